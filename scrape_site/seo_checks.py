"""
On-page SEO checks for lead websites.

Every check takes a parsed BeautifulSoup document and returns a plain dict
that is stored verbatim in EnrichmentResult.seo_info. check_seo_tags() runs
them all.
"""

import json
import re
from typing import Any, Dict, List

from bs4 import BeautifulSoup


OPEN_GRAPH_TAGS = ["og:title", "og:description", "og:image", "og:url", "og:site_name"]

COMMON_LIBRARIES = ["jquery", "bootstrap", "react", "angular", "vue", "tailwindcss", "swiper", "socket.io"]

# (stack name, substrings looked for in script src / link href)
WEB_STACK_MARKERS = [
    ("WordPress", ["wp-content"]),
    ("Shopify", ["cdn.shopify.com"]),
    ("React", ["react"]),
    ("Angular", ["angular"]),
    ("Vue.js", ["vue"]),
    ("Joomla", ["joomla"]),
    ("Magento", ["magento"]),
    ("Wix", ["wix.com"]),
    ("Squarespace", ["squarespace"]),
    ("ASP.NET", ["aspnet"]),
    ("Node.js", ["express"]),
    ("Laravel", ["laravel"]),
    ("Firebase", ["firebase"]),
    ("Next.js", ["_next"]),
]


def _meta_content(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    return (tag.get("content") or "").strip() if tag else ""


def check_title_tag(soup: BeautifulSoup) -> Dict[str, Any]:
    title = soup.title.get_text(strip=True) if soup.title else ""
    if not title:
        return {
            "exists": False,
            "description": "The title tag is missing, which can negatively impact SEO as search engines rely on it to understand page content.",
        }
    return {
        "exists": True,
        "content": title,
        "is_valid_length": 40 <= len(title) <= 60,
        "description": "The title tag helps search engines understand the content of the page. Ideal length is between 40 and 60 characters.",
    }


def check_meta_description(soup: BeautifulSoup) -> Dict[str, Any]:
    description = _meta_content(soup, name="description")
    if not description:
        return {
            "exists": False,
            "description": "The meta description is missing. Search engines may show arbitrary page text instead, which can lower click-through rates.",
        }
    return {
        "exists": True,
        "content": description,
        "is_valid_length": 140 <= len(description) <= 160,
        "description": "The meta description summarises the page for search engines and users. Ideal length is between 140 and 160 characters.",
    }


def check_header_tags(soup: BeautifulSoup) -> Dict[str, Any]:
    """Headers must not skip levels (h1 -> h3) and there should be a single h1."""
    headers = soup.find_all(re.compile(r"^h[1-6]$"))
    last_level = 0
    valid = True
    for header in headers:
        level = int(header.name[1])
        if level > last_level + 1:
            valid = False
        last_level = level

    h1_count = len(soup.find_all("h1"))
    return {
        "is_valid_sequence": valid,
        "h1_count": h1_count,
        "multiple_h1": h1_count > 1,
        "description": "Header tags (H1-H6) should follow a proper hierarchy. Ensure only one H1 is present for optimal SEO.",
    }


def check_image_alt_text(soup: BeautifulSoup) -> Dict[str, Any]:
    images = soup.find_all("img")
    missing = [
        {"src": img.get("src"), "alt": "Missing"}
        for img in images
        if not (img.get("alt") or "").strip()
    ]
    return {
        "total": len(images),
        "missing_alt": len(missing),
        "images_missing_alt": missing,
        "description": "Images should have alt attributes for accessibility and SEO.",
    }


def check_schema_markup(soup: BeautifulSoup) -> Dict[str, Any]:
    scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
    types: List[str] = []
    for script in scripts:
        try:
            data = json.loads(script.string or "")
        except (json.JSONDecodeError, TypeError):
            continue
        for item in data if isinstance(data, list) else [data]:
            if isinstance(item, dict) and item.get("@type"):
                types.append(str(item["@type"]))
    return {
        "exists": bool(scripts),
        "types": types,
        "description": "Schema markup helps search engines understand the content and context of your page.",
    }


def check_robots_meta_tag(soup: BeautifulSoup) -> Dict[str, Any]:
    robots = _meta_content(soup, name="robots")
    result = {
        "exists": bool(robots),
        "description": "The robots meta tag controls how search engines index and follow links on your site.",
    }
    if robots:
        result["content"] = robots
    return result


def check_hreflang_tags(soup: BeautifulSoup) -> Dict[str, Any]:
    countries: List[str] = []
    for link in soup.find_all("link", attrs={"rel": "alternate", "hreflang": True}):
        parts = link["hreflang"].split("-")
        if len(parts) > 1 and parts[1] and parts[1].upper() not in countries:
            countries.append(parts[1].upper())

    if countries:
        description = f"Hreflang tags indicate your content targets these countries: {', '.join(countries)}."
    else:
        description = "No hreflang tags found. Hreflang tags help search engines serve the correct regional version of your content."
    return {"countries": countries, "description": description}


def check_open_graph_tags(soup: BeautifulSoup) -> Dict[str, Any]:
    missing = [tag for tag in OPEN_GRAPH_TAGS if not _meta_content(soup, property=tag)]
    if missing:
        description = f"The following Open Graph tags are missing: {', '.join(missing)}."
    else:
        description = "All required Open Graph tags are present."
    return {"missing_tags": missing, "description": description}


def check_canonical_tag(soup: BeautifulSoup) -> Dict[str, Any]:
    link = soup.find("link", attrs={"rel": "canonical"})
    href = link.get("href") if link else None
    if not href:
        return {"exists": False}
    return {
        "exists": True,
        "href": href,
        "description": "The canonical tag prevents duplicate content issues by naming the preferred version of a page.",
    }


def check_favicon(soup: BeautifulSoup) -> Dict[str, Any]:
    icon = None
    for link in soup.find_all("link", rel=True):
        rel = [r.lower() for r in link.get("rel", [])]
        if "icon" in rel:
            icon = link.get("href")
            break
    result = {"exists": bool(icon), "description": "A favicon improves branding and user experience."}
    if icon:
        result["href"] = icon
    return result


def check_viewport_meta_tag(soup: BeautifulSoup) -> Dict[str, Any]:
    viewport = _meta_content(soup, name="viewport")
    if not viewport:
        return {"exists": False}
    return {
        "exists": True,
        "content": viewport,
        "description": "The viewport meta tag ensures proper rendering on mobile devices.",
    }


def check_broken_links(soup: BeautifulSoup) -> Dict[str, Any]:
    """Counts placeholder links (empty, '#...' or javascript:) as broken."""
    count = 0
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith("javascript"):
            count += 1
    if count:
        description = f"Found {count} broken link(s). Broken links hurt user experience and search rankings."
    else:
        description = "No broken links detected."
    return {"broken_link_count": count, "description": description}


def calculate_text_to_html_ratio(html: str, soup: BeautifulSoup) -> Dict[str, Any]:
    body = soup.body
    text = body.get_text() if body else soup.get_text()
    text_length = len(re.sub(r"\s+", "", text))
    ratio = (text_length / len(html) * 100) if html else 0.0
    within = 25 <= ratio <= 70
    return {
        "ratio": round(ratio, 2),
        "is_within_best_practices": within,
        "description": (
            "The text-to-HTML ratio is within the recommended range (25% to 70%)."
            if within
            else "The text-to-HTML ratio is outside the recommended range (25% to 70%)."
        ),
    }


def check_missing_or_empty_links(soup: BeautifulSoup) -> Dict[str, Any]:
    count = sum(1 for anchor in soup.find_all("a") if not (anchor.get("href") or "").strip())
    if count:
        description = f"Found {count} missing or empty link(s). Ensure all links have valid href attributes."
    else:
        description = "No missing or empty links detected."
    return {"missing_link_count": count, "description": description}


def check_common_library_files(soup: BeautifulSoup) -> Dict[str, Any]:
    detected: Dict[str, List[str]] = {lib: [] for lib in COMMON_LIBRARIES}
    for tag in soup.find_all(["script", "link"]):
        source = tag.get("src") or tag.get("href")
        if not source:
            continue
        for lib in COMMON_LIBRARIES:
            if lib in source.lower():
                detected[lib].append(source)

    summary = [
        {"library": lib, "count": len(files), "files": files}
        for lib, files in detected.items()
        if files
    ]
    return {
        "detected_libraries": summary,
        "description": (
            f"Detected {len(summary)} common library/libraries."
            if summary
            else "No common libraries detected."
        ),
    }


def check_web_stack(soup: BeautifulSoup) -> Dict[str, Any]:
    sources = [
        (tag.get("src") or tag.get("href") or "").lower()
        for tag in soup.find_all(["script", "link"])
    ]
    stacks = []
    for name, markers in WEB_STACK_MARKERS:
        if any(marker in source for source in sources for marker in markers):
            stacks.append(name)

    if "React" not in stacks and soup.find("div", id="root"):
        stacks.append("React")
    if "Next.js" not in stacks and soup.find("script", id="__NEXT_DATA__"):
        stacks.append("Next.js")

    return {
        "stacks": stacks,
        "description": "Web stack detected from script/link sources and framework-specific markup.",
    }


def check_seo_tags(html: str) -> Dict[str, Any]:
    """
    Run every SEO check over a rendered page.

    Args:
        html: Rendered HTML

    Returns:
        Dict keyed by check name
    """
    soup = BeautifulSoup(html, "lxml")
    return {
        "title_tag": check_title_tag(soup),
        "meta_description": check_meta_description(soup),
        "header_tags": check_header_tags(soup),
        "image_alt_text": check_image_alt_text(soup),
        "schema_markup": check_schema_markup(soup),
        "robots_meta_tag": check_robots_meta_tag(soup),
        "hreflang_tags": check_hreflang_tags(soup),
        "open_graph_tags": check_open_graph_tags(soup),
        "canonical_tag": check_canonical_tag(soup),
        "favicon": check_favicon(soup),
        "viewport_meta_tag": check_viewport_meta_tag(soup),
        "broken_links": check_broken_links(soup),
        "text_to_html_ratio": calculate_text_to_html_ratio(html, soup),
        "missing_or_empty_links": check_missing_or_empty_links(soup),
        "common_library_files": check_common_library_files(soup),
        "web_stack": check_web_stack(soup),
    }
