#!/usr/bin/env python3
"""
Social profile scrapers for lead enrichment.

- Facebook follower count from the page's followers link
- Instagram counts read from the search snippet for the handle
- LinkedIn company data (raises AuthWallBlocked when LinkedIn interposes its sign-in wall)
"""

from typing import Any, Dict, Optional

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError, Page

from runner.logging_setup import get_logger
from scrape_google.google_search import build_search_url
from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_errors import AuthWallBlocked, ExtractionFailure
from scrape_lead.lead_stealth import browse_like_human
from scrape_lead.navigation import navigate
from scrape_social.social_parse import (
    canonical_linkedin_url,
    instagram_handle,
    is_linkedin_auth_wall,
    parse_instagram_counts,
    parse_linkedin_company,
)


logger = get_logger("social_scraper")

FOLLOWERS_SELECTOR = 'a[href*="/followers"]'


async def scrape_facebook_followers(tab: Page, facebook_url: str, config: EnrichmentConfig) -> Optional[str]:
    """
    Read the follower text (e.g. "1.2K followers") from a Facebook page.

    Returns:
        Follower text, or None if the page shows none
    """
    await navigate(tab, facebook_url, config)
    try:
        await tab.wait_for_selector(FOLLOWERS_SELECTOR, timeout=5000)
    except PlaywrightError:
        logger.info(f"No followers link on {facebook_url}")
        return None

    text = await tab.text_content(FOLLOWERS_SELECTOR)
    return text.strip() if text and text.strip() else None


async def scrape_instagram_followers(
    tab: Page,
    instagram_url: str,
    config: EnrichmentConfig,
) -> Dict[str, Optional[int]]:
    """
    Look up Instagram counts for a profile via a search for its handle.

    Raises:
        ExtractionFailure: If the URL has no handle or no counts were found
    """
    handle = instagram_handle(instagram_url)
    if not handle:
        raise ExtractionFailure(f"Invalid Instagram URL: {instagram_url}")

    await navigate(tab, build_search_url(f"{handle} instagram"), config)
    await browse_like_human(tab, config, distance=600)

    text = BeautifulSoup(await tab.content(), "lxml").get_text(" ", strip=True)
    counts = parse_instagram_counts(text)
    if counts["followers_count"] is None:
        raise ExtractionFailure(f"No Instagram counts found for @{handle}")

    logger.info(f"Instagram @{handle}: {counts['followers_count']} followers")
    return counts


async def scrape_linkedin_data(tab: Page, linkedin_url: str, config: EnrichmentConfig) -> Dict[str, Any]:
    """
    Scrape public LinkedIn company data.

    Raises:
        AuthWallBlocked: If LinkedIn shows its auth wall or hides the main content
    """
    url = canonical_linkedin_url(linkedin_url)
    await navigate(tab, url, config)

    if await tab.query_selector("div.authwall"):
        raise AuthWallBlocked(url, "auth wall element present")

    try:
        await tab.wait_for_selector("main.main", timeout=5000)
    except PlaywrightError:
        raise AuthWallBlocked(url, "main content missing") from None

    html = await tab.content()
    if is_linkedin_auth_wall(html):
        raise AuthWallBlocked(url, "auth wall element present")

    data = parse_linkedin_company(html)
    logger.info(f"LinkedIn {url}: {data.get('company_name')} ({len(data['employees'])} employees listed)")
    return data
