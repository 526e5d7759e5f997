"""
Website detail extraction for leads.

This module handles:
- Loading the lead website
- Social link and imprint discovery
- Contact extraction
- On-page SEO checks
"""

from scrape_site.site_parse import (
    extract_contact_info,
    extract_social_links,
    find_imprint_link,
    normalize_phone,
)
from scrape_site.seo_checks import check_seo_tags
from scrape_site.site_scraper import scrape_website_details

__all__ = [
    "extract_contact_info",
    "extract_social_links",
    "find_imprint_link",
    "normalize_phone",
    "check_seo_tags",
    "scrape_website_details",
]
