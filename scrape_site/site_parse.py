#!/usr/bin/env python3
"""
Website content parser for lead enrichment.

This module extracts structured lead information from rendered HTML:
- Social media profile links
- Imprint/Impressum page link
- Emails and phone numbers (E.164)
- Job titles with person names (management, owners, board)
"""

import re
from typing import Dict, List, Optional, Set
from urllib.parse import urljoin

import phonenumbers
from bs4 import BeautifulSoup

from runner.logging_setup import get_logger
from scrape_lead.lead_models import empty_social_links


# Initialize logger
logger = get_logger("site_parse")

# First matching link per platform wins
SOCIAL_MEDIA_PATTERNS = {
    "twitter": re.compile(r"(?:twitter|x)\.com/[A-Za-z0-9_]+", re.I),
    "facebook": re.compile(r"facebook\.com/[A-Za-z0-9_.\-]+", re.I),
    "instagram": re.compile(r"instagram\.com/[A-Za-z0-9_.]+", re.I),
    "linkedin": re.compile(r"linkedin\.com/(?:in|company)/[A-Za-z0-9\-]+", re.I),
    "youtube": re.compile(r"youtube\.com/(?:channel/|c/|user/|@)[A-Za-z0-9_\-]+", re.I),
    "pinterest": re.compile(r"pinterest\.[a-z.]+/[A-Za-z0-9_\-]+", re.I),
    "xing": re.compile(r"xing\.com", re.I),
}

IMPRINT_KEYWORDS = ("imprint", "impressum")

# Email regex pattern
EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")

MAILTO_PATTERN = re.compile(r"mailto:([A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,})", re.I)
TEL_PATTERN = re.compile(r"tel:([\d\s()+\-/]+)", re.I)

# File extensions that look like emails in asset names (logo@2x.png)
_NOT_EMAIL_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")

JOB_TITLES = [
    "CEO", "Geschäftsführer", "Geschäftsführerin", "Geschäftsführung", "Director",
    "Founder", "Co-Founder", "Gründer", "Owner", "Inhaber", "Inhaberin", "Partner",
    "Vorstand", "Vorsitzender", "Direktor", "CFO", "COO", "CTO", "CMO",
    "Präsident", "Vizepräsident", "Manager", "Betriebsleiter", "Abteilungsleiter",
    "Chairman", "Chairwoman", "Chairperson", "Management", "Board", "Principal",
    "Leader", "Aufsichtsrat", "Aufsichtsrates", "Prokurist",
]

# Two to four capitalized words, optionally with an academic title
_NAME_WORD = r"[A-ZÄÖÜ][a-zäöüßéèáà]+(?:-[A-ZÄÖÜ][a-zäöüßéèáà]+)?"
NAME_PATTERN = re.compile(
    rf"(?:(?:Dr|Prof|Dipl\.-Ing|Mag)\.?\s+)*({_NAME_WORD}(?:\s+(?:von|van|de|zu)?\s*{_NAME_WORD}){{1,3}})"
)

# Capitalized words that are not part of a person name
_NAME_STOPWORDS = {title.lower() for title in JOB_TITLES} | {
    "gmbh", "ag", "kg", "ug", "und", "the", "and", "handelsregister", "registergericht",
    "amtsgericht", "telefon", "telefax", "tel", "fax", "email", "e-mail", "impressum",
    "anschrift", "kontakt", "sitz", "ust", "straße", "strasse", "vertreten", "durch",
}


def extract_social_links(html: str) -> Dict[str, Optional[str]]:
    """
    Extract social media profile links from page HTML.

    Args:
        html: Rendered HTML

    Returns:
        Dict with every known platform key; None where no link was found
    """
    soup = BeautifulSoup(html, "lxml")
    links = empty_social_links()

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        for platform, pattern in SOCIAL_MEDIA_PATTERNS.items():
            if links[platform] is None and pattern.search(href):
                links[platform] = href

    found = [platform for platform, link in links.items() if link]
    logger.debug(f"Social links found: {found}")
    return links


def find_imprint_link(html: str, base_url: str) -> Optional[str]:
    """
    Find the Imprint/Impressum page link.

    Args:
        html: Rendered HTML
        base_url: URL the HTML was loaded from (for relative links)

    Returns:
        Absolute imprint URL or None
    """
    soup = BeautifulSoup(html, "lxml")

    for anchor in soup.find_all("a", href=True):
        text = anchor.get_text(" ", strip=True).lower()
        if any(keyword in text for keyword in IMPRINT_KEYWORDS):
            href = anchor["href"].strip()
            if href.startswith(("mailto:", "tel:", "javascript:")):
                continue
            return urljoin(base_url, href)

    return None


def normalize_phone(raw: str, region: str = "DE") -> Optional[str]:
    """
    Parse and validate a phone number.

    Args:
        raw: Phone number as written on the page
        region: Default region for numbers without country code

    Returns:
        E.164 formatted number, or None if invalid
    """
    try:
        parsed = phonenumbers.parse(raw, region)
    except phonenumbers.NumberParseException:
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def _is_email(candidate: str) -> bool:
    return bool(EMAIL_PATTERN.fullmatch(candidate)) and not candidate.lower().endswith(_NOT_EMAIL_SUFFIXES)


def extract_emails(soup: BeautifulSoup, text: str) -> List[str]:
    """Emails from mailto: anchors first, then from the page text."""
    emails: List[str] = []
    seen: Set[str] = set()

    def add(email: str):
        key = email.lower()
        if key not in seen and _is_email(email):
            seen.add(key)
            emails.append(email)

    for anchor in soup.find_all("a", href=True):
        match = MAILTO_PATTERN.search(anchor["href"])
        if match:
            add(match.group(1))

    for match in EMAIL_PATTERN.finditer(text):
        add(match.group(0))

    return emails


def extract_phones(soup: BeautifulSoup, text: str, region: str = "DE") -> List[str]:
    """Valid phone numbers (E.164) from tel: anchors first, then from the page text."""
    phones: List[str] = []

    for anchor in soup.find_all("a", href=True):
        match = TEL_PATTERN.search(anchor["href"])
        if match:
            phone = normalize_phone(match.group(1), region)
            if phone and phone not in phones:
                phones.append(phone)

    for match in phonenumbers.PhoneNumberMatcher(text, region):
        phone = phonenumbers.format_number(match.number, phonenumbers.PhoneNumberFormat.E164)
        if phonenumbers.is_valid_number(match.number) and phone not in phones:
            phones.append(phone)

    return phones


def _clean_name(candidate: str) -> Optional[str]:
    words = [w for w in candidate.split() if w.lower() not in _NAME_STOPWORDS]
    if len(words) < 2:
        return None
    return " ".join(words)


def extract_job_titles_and_names(text: str, job_titles: Optional[List[str]] = None) -> List[Dict[str, str]]:
    """
    Pair job titles with the person names that follow them.

    Handles both "Geschäftsführer: Max Mustermann, Erika Musterfrau" lists and
    running text where a name follows the title within a few words.

    Args:
        text: Page text
        job_titles: Titles to look for (defaults to JOB_TITLES)

    Returns:
        List of {"job_title", "name"} dicts, de-duplicated, in order found
    """
    job_titles = job_titles or JOB_TITLES
    results: List[Dict[str, str]] = []
    seen: Set[str] = set()

    def add(job_title: str, name: Optional[str]):
        if not name:
            return
        key = f"{job_title}|{name}"
        if key not in seen:
            seen.add(key)
            results.append({"job_title": job_title, "name": name})

    # Structured "Title: name, name" lists
    for job_title in job_titles:
        structured = re.search(rf"\b{re.escape(job_title)}\b[^:\n]{{0,20}}:\s*([^\n]+)", text, re.I)
        if not structured:
            continue
        for part in re.split(r",|\bund\b|\band\b|;", structured.group(1)):
            part = re.sub(r"\(.*?\)", "", part).strip()
            match = NAME_PATTERN.match(part)
            if match:
                add(job_title, _clean_name(match.group(1)))

    # Running text: first name within the next ten words after a title
    words = text.split()
    for index, word in enumerate(words):
        for job_title in job_titles:
            if job_title.lower() not in word.lower():
                continue
            window = re.sub(r"\(.*?\)", "", " ".join(words[index + 1:index + 11]))
            match = NAME_PATTERN.search(window)
            if match:
                add(job_title, _clean_name(match.group(1)))
                break

    return results


def extract_contact_info(html: str, region: str = "DE") -> Dict[str, list]:
    """
    Extract emails, phone numbers and job titles with names from an imprint page.

    Args:
        html: Imprint page HTML
        region: Default phone region

    Returns:
        Dict with "emails", "phones" and "job_titles_with_names"
    """
    soup = BeautifulSoup(html, "lxml")
    text = soup.get_text("\n", strip=True)

    contact = {
        "emails": extract_emails(soup, text),
        "phones": extract_phones(soup, text, region),
        "job_titles_with_names": extract_job_titles_and_names(text),
    }

    logger.debug(
        f"Contact info: {len(contact['emails'])} email(s), {len(contact['phones'])} phone(s), "
        f"{len(contact['job_titles_with_names'])} person(s)"
    )
    return contact
