"""
Google search rank lookup for leads.
"""

from scrape_google.google_search import (
    find_search_rank,
    normalize_url,
    parse_result_urls,
    perform_search,
    search_website_rank,
)

__all__ = [
    "find_search_rank",
    "normalize_url",
    "parse_result_urls",
    "perform_search",
    "search_website_rank",
]
