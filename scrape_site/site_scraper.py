#!/usr/bin/env python3
"""
Website detail scraper for lead enrichment.

Loads the lead's own website in a browser tab and extracts:
- Social media links
- SEO signals
- Imprint/Impressum contact details
"""

import asyncio
import re
from urllib.parse import urlparse, urlunparse

from playwright.async_api import Error as PlaywrightError, Page

from runner.logging_setup import get_logger
from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_errors import LeadEnrichmentError
from scrape_lead.lead_models import WebsiteDetails
from scrape_lead.lead_stealth import browse_like_human
from scrape_lead.navigation import navigate
from scrape_site.seo_checks import check_seo_tags
from scrape_site.site_parse import extract_contact_info, extract_social_links, find_imprint_link


# Initialize logger
logger = get_logger("site_scraper")

# Fewer divs than this after settling means the page is probably still rendering
MIN_RENDERED_DIVS = 20


def localize_url(url: str, locale: str) -> str:
    """
    Rewrite an English path segment (/en or /en/...) to ``locale``.

    Example:
        >>> localize_url("https://acme.de/en/about", "de")
        'https://acme.de/de/about'
    """
    if not locale:
        return url
    parsed = urlparse(url)
    path = re.sub(r"^/en(?=/|$)", f"/{locale}", parsed.path)
    return urlunparse(parsed._replace(path=path))


async def _count_divs(tab: Page) -> int:
    try:
        return await tab.evaluate("() => document.body ? document.body.querySelectorAll('div').length : 0")
    except PlaywrightError as e:
        logger.debug(f"Could not count divs: {e}")
        return 0


async def scrape_imprint(tab: Page, imprint_url: str, config: EnrichmentConfig):
    """
    Load the imprint page and extract contact details.

    Returns:
        Contact dict, or None when the page could not be loaded
    """
    try:
        await navigate(tab, imprint_url, config)
        await browse_like_human(tab, config)
        html = await tab.content()
    except (LeadEnrichmentError, PlaywrightError) as e:
        logger.warning(f"Imprint page {imprint_url} could not be loaded: {e}")
        return None

    return extract_contact_info(html, region=config.ad_region)


async def scrape_website_details(tab: Page, url: str, config: EnrichmentConfig) -> WebsiteDetails:
    """
    Scrape social links, SEO signals and imprint details from a lead website.

    Args:
        tab: Playwright page owned by the caller
        url: Lead website URL
        config: Enrichment configuration

    Returns:
        WebsiteDetails

    Raises:
        NavigationFailure: If the lead website itself cannot be loaded
    """
    await navigate(tab, url, config)

    final_url = tab.url or url
    localized = localize_url(final_url, config.preferred_site_locale)
    if localized != final_url:
        logger.info(f"Switching to localized version: {localized}")
        await navigate(tab, localized, config)
        final_url = localized

    if config.page_settle_seconds > 0:
        await asyncio.sleep(config.page_settle_seconds)

    div_count = await _count_divs(tab)
    if div_count < MIN_RENDERED_DIVS:
        logger.info(f"Only {div_count} divs rendered on {final_url}, waiting for content")
        if config.page_settle_seconds > 0:
            await asyncio.sleep(config.page_settle_seconds)
        try:
            await tab.wait_for_load_state("networkidle", timeout=config.navigation_timeout_ms)
            await tab.wait_for_selector("body", timeout=30000)
        except PlaywrightError as e:
            logger.debug(f"Page {final_url} did not settle further: {e}")

    await browse_like_human(tab, config)
    html = await tab.content()

    details = WebsiteDetails(
        social_media_links=extract_social_links(html),
        seo_info=check_seo_tags(html),
    )

    imprint_url = find_imprint_link(html, final_url)
    if imprint_url:
        logger.info(f"Imprint page found: {imprint_url}")
        details.imprint_details = await scrape_imprint(tab, imprint_url, config)
    else:
        logger.info(f"No imprint link on {final_url}")

    return details
