#!/usr/bin/env python3
"""
Unit tests for result and state types.
"""

from scrape_lead.lead_models import (
    SOCIAL_PLATFORMS,
    STAGE_ORDER,
    EnrichmentResult,
    LeadIdentity,
    PageSpeedReport,
    StageOutcome,
    WebsiteDetails,
)


ACME = LeadIdentity(name="ACME GmbH", url="https://acme.de")


def test_new_result_is_fully_shaped():
    data = EnrichmentResult(identity=ACME).to_dict()

    assert data["name"] == "ACME GmbH"
    assert data["url"] == "https://acme.de"
    assert data["social_media_links"] == {p: None for p in SOCIAL_PLATFORMS}
    assert data["page_speed"] == {"mobile": None, "desktop": None}
    assert data["google_search"] == {"rank": None, "matching_urls": []}
    for key in (
        "imprint_details", "seo_info", "facebook_followers", "instagram_followers",
        "linkedin_data", "google_ad_transparency", "meta_ad_library", "finished_at", "fatal_error",
    ):
        assert data[key] is None
    assert data["started_at"] is not None


def test_to_dict_without_timestamps():
    data = EnrichmentResult(identity=ACME).to_dict(include_timestamps=False)

    assert "started_at" not in data
    assert "finished_at" not in data


def test_failed_result_skips_every_stage():
    result = EnrichmentResult.failed(ACME, "Browser session could not be launched")

    assert result.fatal_error == "Browser session could not be launched"
    assert [o.stage_name for o in result.stage_outcomes] == list(STAGE_ORDER)
    assert not any(o.attempted for o in result.stage_outcomes)
    assert result.succeeded_stages == []
    assert result.finished_at == result.started_at


def test_set_social_links_keeps_every_platform():
    result = EnrichmentResult(identity=ACME)

    result.set_social_links({"facebook": "https://facebook.com/acme", "linkedin": "", "myspace": "x"})

    assert set(result.social_media_links) == set(SOCIAL_PLATFORMS)
    assert result.social_media_links["facebook"] == "https://facebook.com/acme"
    assert result.social_media_links["linkedin"] is None


def test_outcome_lookup_and_succeeded_stages():
    result = EnrichmentResult(identity=ACME)
    result.stage_outcomes = [
        StageOutcome("website_details", attempted=True, succeeded=True),
        StageOutcome.skipped("facebook", "skipped: no facebook link discovered"),
    ]

    assert result.outcome("facebook").error_message == "skipped: no facebook link discovered"
    assert result.outcome("linkedin") is None
    assert result.succeeded_stages == ["website_details"]


def test_page_speed_report_to_dict():
    report = PageSpeedReport(strategy="mobile", success=False, message="unavailable")

    assert report.to_dict() == {
        "strategy": "mobile",
        "success": False,
        "metrics": None,
        "message": "unavailable",
    }


def test_website_details_is_empty():
    assert WebsiteDetails().is_empty
    assert not WebsiteDetails(seo_info={"title_tag": {}}).is_empty
