"""
Database models for lead-enricher using SQLAlchemy 2.0 style.

Models:
- EnrichedLead: latest enrichment result per lead website, with per-stage
  refresh-due timestamps
"""

from datetime import datetime
from typing import Optional
from urllib.parse import urlparse, urlunparse

import tldextract
from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON

from scrape_lead.lead_models import (
    STAGE_AD_TRANSPARENCY,
    STAGE_FACEBOOK,
    STAGE_INSTAGRAM,
    STAGE_LINKEDIN,
    STAGE_PAGE_SPEED,
    STAGE_SEARCH_RANK,
    STAGE_WEBSITE,
)


# Bundled public suffix snapshot only, no network fetch
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class EnrichedLead(Base):
    """
    Enriched lead record.

    Attributes:
        id: Primary key
        name: Company name
        website: Canonical URL (normalized, unique)
        domain: Registered domain (e.g., 'example.com')
        result: Latest EnrichmentResult as JSON (timestamps included)
        fatal_error: Set when the last run could not start
        *_due_at: When each stage's data should be refreshed (NULL = due now)
        last_enriched_at: Finish time of the last stored run
        created_at / updated_at: Row bookkeeping
    """

    __tablename__ = "enriched_leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    website: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    result: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    fatal_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    website_details_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    facebook_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    instagram_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    linkedin_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ad_transparency_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    page_speed_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    search_rank_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    last_enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_enriched_leads_last_enriched", "last_enriched_at"),
    )

    def __repr__(self) -> str:
        return f"<EnrichedLead(id={self.id}, name='{self.name}', website='{self.website}')>"


# Stage name -> refresh-due column
STAGE_DUE_COLUMNS = {
    STAGE_WEBSITE: EnrichedLead.website_details_due_at,
    STAGE_FACEBOOK: EnrichedLead.facebook_due_at,
    STAGE_INSTAGRAM: EnrichedLead.instagram_due_at,
    STAGE_LINKEDIN: EnrichedLead.linkedin_due_at,
    STAGE_AD_TRANSPARENCY: EnrichedLead.ad_transparency_due_at,
    STAGE_PAGE_SPEED: EnrichedLead.page_speed_due_at,
    STAGE_SEARCH_RANK: EnrichedLead.search_rank_due_at,
}


def canonicalize_url(raw_url: str) -> str:
    """
    Canonicalize a URL by:
    - Ensuring it has a scheme (defaults to https://)
    - Removing fragments (#...) and query strings
    - Removing trailing slashes
    - Standardizing www. subdomain (removes www.)
    - Converting the host to lowercase

    Args:
        raw_url: Raw URL string to canonicalize

    Returns:
        Canonicalized URL string

    Examples:
        >>> canonicalize_url("acme.de")
        'https://acme.de'
        >>> canonicalize_url("http://www.acme.de/")
        'http://acme.de'
    """
    url = raw_url.strip()

    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"

    parsed = urlparse(url)

    netloc = parsed.netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]

    path = parsed.path
    if path.endswith("/"):
        path = path.rstrip("/")

    return urlunparse((parsed.scheme.lower(), netloc, path, "", "", ""))


def domain_from_url(url: str) -> str:
    """
    Extract the registered domain from a URL using tldextract.

    Args:
        url: URL string to extract domain from

    Returns:
        Domain string (e.g., 'example.co.uk')

    Examples:
        >>> domain_from_url("https://www.example.com/path")
        'example.com'
    """
    extracted = _tld_extract(url)
    if not extracted.suffix:
        return extracted.domain.lower()
    return f"{extracted.domain}.{extracted.suffix}".lower()
