"""
Parsers for social network pages.

Pure functions over URLs, text and HTML; no browser access here.
"""

import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup


INSTAGRAM_HANDLE = re.compile(r"instagram\.com/([A-Za-z0-9._]+)", re.I)

# "961 Followers, 57 Following, 497 Posts" as shown in search snippets
INSTAGRAM_COUNTS = re.compile(
    r"([\d.,]+\s*[KkMm]?)\s+Followers,?\s+([\d.,]+\s*[KkMm]?)\s+Following,?\s+([\d.,]+\s*[KkMm]?)\s+Posts",
    re.I,
)

LINKEDIN_COMPANY = re.compile(r"(/company/[^/?#]+)")

LINKEDIN_FIELDS = {
    "industry": "about-us__industry",
    "size": "about-us__size",
    "headquarters": "about-us__headquarters",
    "organization_type": "about-us__organizationType",
    "founded_on": "about-us__foundedOn",
    "specialties": "about-us__specialties",
}


def instagram_handle(instagram_url: str) -> Optional[str]:
    match = INSTAGRAM_HANDLE.search(instagram_url)
    return match.group(1) if match else None


def parse_count(raw: str) -> Optional[int]:
    """
    Parse a follower-style count.

    Examples:
        >>> parse_count("1,234")
        1234
        >>> parse_count("12.5K")
        12500
        >>> parse_count("3M")
        3000000
    """
    value = raw.strip().replace(" ", "")
    if not value:
        return None

    multiplier = 1
    if value[-1] in "kK":
        multiplier, value = 1000, value[:-1]
    elif value[-1] in "mM":
        multiplier, value = 1000000, value[:-1]

    if multiplier > 1:
        try:
            return int(float(value.replace(",", ".")) * multiplier)
        except ValueError:
            return None

    digits = re.sub(r"[^\d]", "", value)
    return int(digits) if digits else None


def parse_instagram_counts(text: str) -> Dict[str, Optional[int]]:
    """
    Find follower/following/post counts in free text.

    Returns:
        Dict with followers_count, following_count and posts_count (None when absent)
    """
    match = INSTAGRAM_COUNTS.search(text)
    if not match:
        return {"followers_count": None, "following_count": None, "posts_count": None}
    return {
        "followers_count": parse_count(match.group(1)),
        "following_count": parse_count(match.group(2)),
        "posts_count": parse_count(match.group(3)),
    }


def canonical_linkedin_url(linkedin_url: str) -> str:
    """
    Cut a LinkedIn company URL down to /company/<slug>.

    Example:
        >>> canonical_linkedin_url("https://www.linkedin.com/company/acme/about/?trk=x")
        'https://www.linkedin.com/company/acme'
    """
    match = LINKEDIN_COMPANY.search(linkedin_url)
    if not match:
        return linkedin_url
    return linkedin_url[:match.end()]


def is_linkedin_auth_wall(html: str) -> bool:
    soup = BeautifulSoup(html, "lxml")
    return soup.select_one("div.authwall") is not None


def _text_or_none(element) -> Optional[str]:
    if element is None:
        return None
    text = element.get_text(" ", strip=True)
    return text or None


def parse_linkedin_company(html: str) -> Dict[str, Any]:
    """
    Parse the public LinkedIn company page.

    Args:
        html: Company page HTML

    Returns:
        Dict with company_name, the about-us fields and employees
    """
    soup = BeautifulSoup(html, "lxml")

    data: Dict[str, Any] = {"company_name": _text_or_none(soup.find("h1"))}
    for key, test_id in LINKEDIN_FIELDS.items():
        data[key] = _text_or_none(soup.select_one(f'div[data-test-id="{test_id}"] dd'))

    employees: List[Dict[str, str]] = []
    for item in soup.select('section[data-test-id="employees-at"] li'):
        name = _text_or_none(item.find("h3"))
        position = _text_or_none(item.find("h4"))
        if name and position:
            employees.append({"name": name, "position": position})
    data["employees"] = employees

    return data
