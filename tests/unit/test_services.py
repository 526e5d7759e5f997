#!/usr/bin/env python3
"""
Unit tests for the PageSpeed and Close CRM clients (HTTP mocked).
"""

from unittest.mock import Mock

import pytest
import requests

from scrape_lead.lead_errors import UpstreamApiFailure
from scrape_lead.lead_models import LeadIdentity
from services.close_crm import CloseCrmClient
from services.pagespeed_client import (
    PageSpeedClient,
    describe_performance,
    extract_metrics,
    parse_seconds,
)


LIGHTHOUSE = {
    "categories": {"performance": {"score": 0.87}},
    "audits": {
        "first-contentful-paint": {"displayValue": "1.8\xa0s"},
        "speed-index": {"displayValue": "4.1\xa0s"},
        "interactive": {"displayValue": "850\xa0ms"},
        "viewport": {"score": 1},
    },
}


def make_response(status_code=200, json_data=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_data if json_data is not None else {}
    return response


# ----------------------------------------------------------------------
# PageSpeed
# ----------------------------------------------------------------------

@pytest.mark.parametrize(
    "display,expected",
    [("2.2 s", 2.2), ("850 ms", 0.85), ("1,200 ms", 1.2), ("", None), (None, None)],
)
def test_parse_seconds(display, expected):
    assert parse_seconds(display) == expected


def test_describe_performance():
    description = describe_performance(1.8, 4.1, None)

    assert "FCP is within the limit (2.2 seconds). Measured: 1.8 seconds." in description
    assert "Speed Index exceeds the limit (3.4 seconds). Measured: 4.1 seconds." in description
    assert "TTI was not measured." in description


def test_extract_metrics_mobile_and_desktop():
    mobile = extract_metrics(LIGHTHOUSE, "mobile")
    desktop = extract_metrics(LIGHTHOUSE, "desktop")

    assert mobile["performance_score"] == 87
    assert mobile["first_contentful_paint"] == "1.8\xa0s"
    assert mobile["mobile_friendly"] == "Yes"
    assert desktop["mobile_friendly"] == "N/A"
    assert "TTI is within the limit" in mobile["performance_description"]


def test_pagespeed_fetch_success():
    session = Mock()
    session.get.return_value = make_response(200, {"lighthouseResult": LIGHTHOUSE})
    client = PageSpeedClient(api_key="key", session=session)

    report = client.fetch("https://acme.de", "mobile")

    assert report.success
    assert report.metrics["performance_score"] == 87
    params = session.get.call_args.kwargs["params"]
    assert params == {"url": "https://acme.de", "strategy": "mobile", "key": "key"}


@pytest.mark.parametrize(
    "status,json_data,message",
    [
        (400, {"error": {"message": "Invalid URL"}}, "PageSpeed API returned an error for the URL: Invalid URL"),
        (500, {}, "PageSpeed API is currently unavailable. Please try again later."),
        (503, {}, "PageSpeed API is currently unavailable. Please try again later."),
        (429, {}, "Unable to fetch PageSpeed data for the URL: https://acme.de. Error: HTTP 429"),
    ],
)
def test_pagespeed_fetch_http_errors(status, json_data, message):
    session = Mock()
    session.get.return_value = make_response(status, json_data)
    client = PageSpeedClient(api_key="key", session=session)

    report = client.fetch("https://acme.de", "desktop")

    assert not report.success
    assert report.metrics is None
    assert report.message == message


def test_pagespeed_fetch_network_error():
    session = Mock()
    session.get.side_effect = requests.exceptions.ConnectionError("connection reset")
    client = PageSpeedClient(api_key="key", session=session)

    report = client.fetch("https://acme.de", "mobile")

    assert not report.success
    assert "connection reset" in report.message


def test_pagespeed_fetch_without_lighthouse_result():
    session = Mock()
    session.get.return_value = make_response(200, {"id": "https://acme.de"})
    client = PageSpeedClient(api_key="key", session=session)

    report = client.fetch("https://acme.de", "mobile")

    assert report.message == "No data available for the provided URL."


def test_pagespeed_strategies_independent():
    session = Mock()
    session.get.side_effect = [
        make_response(500),
        make_response(200, {"lighthouseResult": LIGHTHOUSE}),
    ]
    client = PageSpeedClient(api_key="key", session=session)

    mobile = client.fetch("https://acme.de", "mobile")
    desktop = client.fetch("https://acme.de", "desktop")

    assert not mobile.success
    assert desktop.success


def test_pagespeed_fetch_malformed_body_is_failed_report():
    session = Mock()
    session.get.return_value = make_response(
        200, {"lighthouseResult": {"categories": {"performance": None}, "audits": {}}}
    )
    client = PageSpeedClient(api_key="key", session=session)

    report = client.fetch("https://acme.de", "mobile")

    assert not report.success
    assert report.metrics is None
    assert "unexpected data" in report.message


# ----------------------------------------------------------------------
# Close CRM
# ----------------------------------------------------------------------

def test_close_client_requires_key(monkeypatch):
    monkeypatch.delenv("CLOSE_API_KEY", raising=False)

    with pytest.raises(ValueError):
        CloseCrmClient(session=Mock())


def test_close_fetch_leads_pages_and_skips_missing_urls():
    session = Mock()
    session.headers = {}
    session.get.side_effect = [
        make_response(200, {
            "data": [
                {"name": "ACME GmbH", "url": "https://acme.de"},
                {"name": "No Site KG", "url": None},
            ],
            "has_more": True,
        }),
        make_response(200, {"data": [{"name": "", "url": "https://beta.de"}], "has_more": False}),
    ]
    client = CloseCrmClient(api_key="api_key", session=session)

    leads = client.fetch_leads()

    assert leads == [
        LeadIdentity(name="ACME GmbH", url="https://acme.de"),
        LeadIdentity(name="https://beta.de", url="https://beta.de"),
    ]
    assert session.auth == ("api_key", "")
    assert session.get.call_args_list[1].kwargs["params"]["_skip"] == 2


def test_close_fetch_leads_limit():
    session = Mock()
    session.headers = {}
    session.get.return_value = make_response(200, {
        "data": [{"name": f"Lead {i}", "url": f"https://lead{i}.de"} for i in range(5)],
        "has_more": True,
    })
    client = CloseCrmClient(api_key="api_key", session=session)

    leads = client.fetch_leads(limit=3)

    assert len(leads) == 3
    assert session.get.call_count == 1


def test_close_fetch_leads_api_error():
    session = Mock()
    session.headers = {}
    session.get.return_value = make_response(401, {"error": "Unauthorized"})
    client = CloseCrmClient(api_key="bad", session=session)

    with pytest.raises(UpstreamApiFailure) as exc_info:
        client.fetch_leads()

    assert exc_info.value.status_code == 401
    assert "Unauthorized" in str(exc_info.value)
