#!/usr/bin/env python3
"""
Ad registry scrapers for lead enrichment.

- Google Ads Transparency Center: first creative for the lead's domain
- Meta Ad Library: ad status for the lead's Facebook page

Parsing is split into pure parse_* functions over HTML.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from playwright.async_api import Page

from runner.logging_setup import get_logger
from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_stealth import browse_like_human
from scrape_lead.navigation import navigate


logger = get_logger("ad_scraper")

TRANSPARENCY_BASE = "https://adstransparency.google.com"
TRANSPARENCY_URL = TRANSPARENCY_BASE + "/?region={region}&hl=en&domain={domain}"

AD_LIBRARY_URL = (
    "https://www.facebook.com/ads/library/?active_status=active&ad_type=all"
    "&country={country}&is_targeted_country=false&media_type=all"
    "&search_type=page&view_all_page_id={page_id}"
)

# Seconds given to Facebook's client-side rendering
FACEBOOK_RENDER_WAIT = 3


def lead_domain(url: str) -> str:
    """
    Host of a lead URL without a leading www.

    Example:
        >>> lead_domain("https://www.acme.de/kontakt")
        'acme.de'
    """
    raw = url if url.startswith(("http://", "https://")) else f"https://{url}"
    host = (urlparse(raw).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def parse_transparency_listing(html: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (first creative href, advertiser name) from a domain listing."""
    soup = BeautifulSoup(html, "lxml")
    creative = soup.select_one("creative-preview a[href]")
    advertiser = soup.select_one("div.advertiser-name")
    return (
        creative["href"] if creative else None,
        advertiser.get_text(strip=True) if advertiser else None,
    )


def parse_creative_details(html: str) -> Dict[str, Optional[str]]:
    soup = BeautifulSoup(html, "lxml")

    def prop(css_class: str, label: str) -> Optional[str]:
        element = soup.select_one(f"div.property.{css_class}")
        if element is None:
            return None
        return element.get_text(" ", strip=True).replace(label, "").strip() or None

    return {
        "first_shown": prop("first-shown", "First shown:"),
        "last_shown": prop("last-shown", "Last shown:"),
        "topic": prop("subject-matter", "Topic:"),
    }


def parse_page_id(html: str) -> Optional[str]:
    """
    Find the Facebook page id on the profile transparency view.

    The id is the span text right before the "Page ID" label.
    """
    soup = BeautifulSoup(html, "lxml")
    texts = [span.get_text(strip=True) for span in soup.find_all("span")]
    for index, text in enumerate(texts):
        if "Page ID" in text and index > 0:
            return texts[index - 1] or None
    return None


def parse_ad_library(html: str) -> Dict[str, Optional[str]]:
    soup = BeautifulSoup(html, "lxml")
    body_text = soup.get_text(" ", strip=True)
    started = None
    for span in soup.find_all("span"):
        text = span.get_text(" ", strip=True)
        if text.startswith("Started running on"):
            started = text
            break
    return {
        "ad_status": "No active ads found" if "No ads" in body_text else "Active ads found",
        "started_running_text": started,
    }


async def scrape_google_ad_transparency(
    tab: Page,
    lead_url: str,
    config: EnrichmentConfig,
) -> Optional[Dict[str, Any]]:
    """
    Look up the lead's domain in the Google Ads Transparency Center.

    Returns:
        Dict with domain, advertiser_name, first_shown, last_shown and topic,
        or None when the domain has no creatives
    """
    domain = lead_domain(lead_url)
    await tab.context.add_cookies([{
        "name": "lang",
        "value": "en",
        "domain": ".google.com",
        "path": "/",
        "httpOnly": True,
        "secure": True,
    }])

    await navigate(tab, TRANSPARENCY_URL.format(region=config.ad_region, domain=domain), config)
    await browse_like_human(tab, config, distance=1000)

    creative_href, advertiser = parse_transparency_listing(await tab.content())
    if not creative_href:
        logger.info(f"No ad creatives for {domain}")
        return None

    await navigate(tab, TRANSPARENCY_BASE + creative_href, config)
    details = parse_creative_details(await tab.content())

    logger.info(f"Ads Transparency {domain}: advertiser={advertiser}")
    return {"domain": domain, "advertiser_name": advertiser, **details}


async def scrape_facebook_page_id(tab: Page, facebook_url: str, config: EnrichmentConfig) -> Optional[str]:
    """Read the numeric page id from the page's profile transparency view."""
    transparency_url = facebook_url.rstrip("/") + "/about_profile_transparency"
    await navigate(tab, transparency_url, config)
    await asyncio.sleep(FACEBOOK_RENDER_WAIT)

    page_id = parse_page_id(await tab.content())
    if page_id is None:
        logger.info(f"No Page ID found on {transparency_url}")
    return page_id


async def scrape_meta_ad_library(tab: Page, page_id: str, config: EnrichmentConfig) -> Dict[str, Any]:
    """
    Check the Meta Ad Library for a Facebook page.

    Returns:
        Dict with page_id, ad_library_url, ad_status and started_running_text
    """
    url = AD_LIBRARY_URL.format(country=config.ad_region, page_id=page_id)
    await navigate(tab, url, config)
    await asyncio.sleep(FACEBOOK_RENDER_WAIT)
    await tab.wait_for_selector("body", timeout=5000)

    library = parse_ad_library(await tab.content())
    logger.info(f"Meta Ad Library page {page_id}: {library['ad_status']}")
    return {"page_id": page_id, "ad_library_url": url, **library}
