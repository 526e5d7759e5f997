"""
Extraction collaborators consumed by the orchestrator.

LeadExtractors bundles one callable per extraction step. The orchestrator
only ever calls these, so tests drive it with deterministic doubles while
production wires the real scrapers through LeadExtractors.default().
"""

from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import Page

from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_models import PageSpeedReport, SearchRank, WebsiteDetails


@dataclass
class LeadExtractors:
    """
    Callables used by each pipeline stage.

    All take a tab first, except ``page_speed`` which is a blocking HTTP
    call and is run in a worker thread.
    """
    website_details: Callable[[Page, str], Awaitable[WebsiteDetails]]
    facebook_followers: Callable[[Page, str], Awaitable[Optional[str]]]
    facebook_page_id: Callable[[Page, str], Awaitable[Optional[str]]]
    meta_ad_library: Callable[[Page, str], Awaitable[Dict[str, Any]]]
    instagram_followers: Callable[[Page, str], Awaitable[Dict[str, Optional[int]]]]
    linkedin_data: Callable[[Page, str], Awaitable[Dict[str, Any]]]
    ad_transparency: Callable[[Page, str], Awaitable[Optional[Dict[str, Any]]]]
    page_speed: Callable[[str, str], PageSpeedReport]
    search_rank: Callable[[Page, str, str], Awaitable[SearchRank]]

    @classmethod
    def default(cls, config: EnrichmentConfig) -> "LeadExtractors":
        """Wire the real scrapers and API clients."""
        from scrape_ads.ad_scraper import (
            scrape_facebook_page_id,
            scrape_google_ad_transparency,
            scrape_meta_ad_library,
        )
        from scrape_google.google_search import search_website_rank
        from scrape_site.site_scraper import scrape_website_details
        from scrape_social.social_scraper import (
            scrape_facebook_followers,
            scrape_instagram_followers,
            scrape_linkedin_data,
        )
        from services.pagespeed_client import PageSpeedClient

        pagespeed = PageSpeedClient(
            api_key=config.pagespeed_api_key,
            timeout=config.pagespeed_timeout_seconds,
        )

        return cls(
            website_details=partial(scrape_website_details, config=config),
            facebook_followers=partial(scrape_facebook_followers, config=config),
            facebook_page_id=partial(scrape_facebook_page_id, config=config),
            meta_ad_library=partial(scrape_meta_ad_library, config=config),
            instagram_followers=partial(scrape_instagram_followers, config=config),
            linkedin_data=partial(scrape_linkedin_data, config=config),
            ad_transparency=partial(scrape_google_ad_transparency, config=config),
            page_speed=pagespeed.fetch,
            search_rank=partial(search_website_rank, config=config),
        )
