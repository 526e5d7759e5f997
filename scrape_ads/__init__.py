"""
Ad registry lookups (Google Ads Transparency, Meta Ad Library).
"""

from scrape_ads.ad_scraper import (
    scrape_facebook_page_id,
    scrape_google_ad_transparency,
    scrape_meta_ad_library,
)

__all__ = [
    "scrape_facebook_page_id",
    "scrape_google_ad_transparency",
    "scrape_meta_ad_library",
]
