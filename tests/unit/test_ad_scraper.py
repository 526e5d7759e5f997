#!/usr/bin/env python3
"""
Unit tests for Google Ads Transparency and Meta Ad Library scraping.
"""

import asyncio
from unittest.mock import patch

from scrape_ads.ad_scraper import (
    AD_LIBRARY_URL,
    TRANSPARENCY_BASE,
    TRANSPARENCY_URL,
    lead_domain,
    parse_ad_library,
    parse_creative_details,
    parse_page_id,
    parse_transparency_listing,
    scrape_facebook_page_id,
    scrape_google_ad_transparency,
    scrape_meta_ad_library,
)

from conftest import FakeContext, FakePage


LISTING_HTML = """
<html><body>
  <creative-preview><a href="/advertiser/AR123/creative/CR456?region=DE">Ad</a></creative-preview>
  <creative-preview><a href="/advertiser/AR123/creative/CR789?region=DE">Ad</a></creative-preview>
  <div class="advertiser-name">ACME GmbH</div>
</body></html>
"""

CREATIVE_HTML = """
<html><body>
  <div class="property first-shown">First shown: Jan 3, 2024</div>
  <div class="property last-shown">Last shown: Oct 1, 2026</div>
  <div class="property subject-matter">Topic: Software</div>
</body></html>
"""

TRANSPARENCY_VIEW_HTML = """
<html><body>
  <span>Page transparency</span>
  <span>104567891234567</span>
  <span>Page ID</span>
</body></html>
"""

AD_LIBRARY_HTML = """
<html><body>
  <span>Started running on 12 Sep 2026</span>
  <span>Started running on 1 Aug 2026</span>
</body></html>
"""


def test_lead_domain():
    assert lead_domain("https://www.acme.de/kontakt") == "acme.de"
    assert lead_domain("acme.de") == "acme.de"
    assert lead_domain("http://Shop.ACME.de") == "shop.acme.de"


def test_parse_transparency_listing_takes_first_creative():
    href, advertiser = parse_transparency_listing(LISTING_HTML)

    assert href == "/advertiser/AR123/creative/CR456?region=DE"
    assert advertiser == "ACME GmbH"


def test_parse_transparency_listing_empty():
    assert parse_transparency_listing("<html><body></body></html>") == (None, None)


def test_parse_creative_details():
    assert parse_creative_details(CREATIVE_HTML) == {
        "first_shown": "Jan 3, 2024",
        "last_shown": "Oct 1, 2026",
        "topic": "Software",
    }


def test_parse_page_id():
    assert parse_page_id(TRANSPARENCY_VIEW_HTML) == "104567891234567"
    assert parse_page_id("<span>Page ID</span>") is None


def test_parse_ad_library():
    assert parse_ad_library(AD_LIBRARY_HTML) == {
        "ad_status": "Active ads found",
        "started_running_text": "Started running on 12 Sep 2026",
    }
    assert parse_ad_library("<body><div>No ads match your search</div></body>")["ad_status"] == "No active ads found"


def test_scrape_google_ad_transparency(config):
    listing_url = TRANSPARENCY_URL.format(region="DE", domain="acme.de")
    creative_url = TRANSPARENCY_BASE + "/advertiser/AR123/creative/CR456?region=DE"
    context = FakeContext(browser=None, options={})
    page = FakePage(context, pages={listing_url: LISTING_HTML, creative_url: CREATIVE_HTML})

    result = asyncio.run(scrape_google_ad_transparency(page, "https://www.acme.de", config))

    assert context.cookies[0]["name"] == "lang"
    assert context.cookies[0]["value"] == "en"
    assert page.visits == [listing_url, creative_url]
    assert result == {
        "domain": "acme.de",
        "advertiser_name": "ACME GmbH",
        "first_shown": "Jan 3, 2024",
        "last_shown": "Oct 1, 2026",
        "topic": "Software",
    }


def test_scrape_google_ad_transparency_no_creatives(config):
    page = FakePage(FakeContext(browser=None, options={}))

    assert asyncio.run(scrape_google_ad_transparency(page, "https://acme.de", config)) is None


@patch("scrape_ads.ad_scraper.FACEBOOK_RENDER_WAIT", 0)
def test_scrape_meta_ad_library(config):
    page_id = "104567891234567"
    library_url = AD_LIBRARY_URL.format(country="DE", page_id=page_id)
    page = FakePage(context=None, pages={library_url: AD_LIBRARY_HTML})

    result = asyncio.run(scrape_meta_ad_library(page, page_id, config))

    assert page.visits == [library_url]
    assert result == {
        "page_id": page_id,
        "ad_library_url": library_url,
        "ad_status": "Active ads found",
        "started_running_text": "Started running on 12 Sep 2026",
    }


@patch("scrape_ads.ad_scraper.FACEBOOK_RENDER_WAIT", 0)
def test_scrape_facebook_page_id(config):
    transparency_url = "https://facebook.com/acme/about_profile_transparency"
    page = FakePage(context=None, pages={transparency_url: TRANSPARENCY_VIEW_HTML})

    page_id = asyncio.run(scrape_facebook_page_id(page, "https://facebook.com/acme/", config))

    assert page_id == "104567891234567"
