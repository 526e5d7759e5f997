"""
Google search helpers for lead enrichment.

- perform_search(): run a query in a tab and collect result URLs
- find_search_rank(): position of a site among those URLs
- search_website_rank(): both, for the search-rank stage
"""

import re
from typing import List, Optional
from urllib.parse import quote_plus, urlparse, urlunparse

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError, Page

from runner.logging_setup import get_logger
from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_models import SearchRank
from scrape_lead.lead_stealth import browse_like_human
from scrape_lead.navigation import navigate


logger = get_logger("google_search")

SEARCH_URL = "https://www.google.com/search?q={query}"

URL_IN_TEXT = re.compile(r"https?://[^\s>›]+")


def build_search_url(query: str) -> str:
    return SEARCH_URL.format(query=quote_plus(query))


def parse_result_urls(html: str) -> List[str]:
    """
    Extract result URLs from the <cite> elements of a search results page.

    Only cite texts that start with a full http(s) URL are kept.

    Args:
        html: Search results HTML

    Returns:
        URLs in result order
    """
    soup = BeautifulSoup(html, "lxml")
    urls = []
    for cite in soup.find_all("cite"):
        match = URL_IN_TEXT.search(cite.get_text(" ", strip=True))
        if match:
            urls.append(match.group(0))
    return urls


def normalize_url(url: str) -> str:
    """
    Normalize a URL for rank matching: force https, drop a leading www.

    Examples:
        >>> normalize_url("http://www.example.com")
        'https://example.com/'
        >>> normalize_url("https://Example.com/about")
        'https://example.com/about'
    """
    raw = url.strip()
    if not raw.startswith(("http://", "https://")):
        raw = f"https://{raw}"

    parsed = urlparse(raw)
    host = parsed.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    path = parsed.path or "/"
    return urlunparse(("https", host, path, "", parsed.query, ""))


def find_search_rank(results: List[str], website_url: str) -> SearchRank:
    """
    Find where ``website_url`` appears among ``results``.

    A result matches when its normalized form starts with the normalized
    website URL.

    Args:
        results: Result URLs in ranked order
        website_url: Lead website

    Returns:
        SearchRank with 1-based rank of the first match (None when absent)
        and every matching URL
    """
    target = normalize_url(website_url)
    rank: Optional[int] = None
    matching: List[str] = []

    for position, url in enumerate(results, start=1):
        try:
            normalized = normalize_url(url)
        except ValueError:
            continue
        if normalized.startswith(target):
            matching.append(url)
            if rank is None:
                rank = position

    return SearchRank(rank=rank, matching_urls=matching)


async def perform_search(tab: Page, query: str, config: EnrichmentConfig) -> List[str]:
    """
    Search for ``query`` and return the result URLs.

    Raises:
        NavigationFailure: If the search page cannot be loaded
    """
    await navigate(tab, build_search_url(query), config)
    try:
        await tab.wait_for_selector("#search", timeout=15000)
    except PlaywrightError as e:
        logger.debug(f"No #search container for '{query}': {e}")
    await browse_like_human(tab, config)

    urls = parse_result_urls(await tab.content())
    logger.debug(f"Search '{query}' returned {len(urls)} URL(s)")
    return urls


async def search_website_rank(
    tab: Page,
    company_name: str,
    website_url: str,
    config: EnrichmentConfig,
) -> SearchRank:
    """Search the company name and locate its website among the results."""
    results = await perform_search(tab, company_name, config)
    rank = find_search_rank(results, website_url)
    logger.info(f"Search rank for {company_name}: {rank.rank} ({len(rank.matching_urls)} match(es))")
    return rank
