#!/usr/bin/env python3
"""
Unit tests for resilient navigation.

Tests:
- Success on first attempt
- Retry with reload after transient failures
- NavigationFailure after the attempt budget, carrying the last error
- Error kind classification
"""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from scrape_lead.lead_errors import NavigationFailure
from scrape_lead.navigation import (
    KIND_CONNECTION_REFUSED,
    KIND_CONTEXT_DESTROYED,
    KIND_DNS,
    KIND_OTHER,
    KIND_TARGET_CLOSED,
    KIND_TIMEOUT,
    classify_navigation_error,
    navigate,
    safe_goto,
)

from conftest import FakePage


def test_safe_goto_first_attempt():
    page = FakePage(context=None)

    asyncio.run(safe_goto(page, "https://acme.de", timeout_ms=1000, backoff_seconds=0))

    assert page.goto_calls == 1
    assert page.reload_calls == 0
    assert page.url == "https://acme.de"


def test_safe_goto_recovers_after_transient_failures():
    page = FakePage(
        context=None,
        goto_errors=[
            PlaywrightTimeout("Timeout 1000ms exceeded"),
            PlaywrightError("net::ERR_CONNECTION_REFUSED at https://acme.de"),
            None,
        ],
    )

    asyncio.run(safe_goto(page, "https://acme.de", max_retries=3, backoff_seconds=0))

    assert page.goto_calls == 3
    # Reload before each retry
    assert page.reload_calls == 2
    assert page.visits == ["https://acme.de"]


def test_safe_goto_gives_up_after_max_retries():
    page = FakePage(
        context=None,
        goto_errors=[
            PlaywrightTimeout("Timeout 1000ms exceeded"),
            PlaywrightTimeout("Timeout 1000ms exceeded"),
            PlaywrightError("net::ERR_NAME_NOT_RESOLVED at https://nowhere.invalid"),
        ],
    )

    with pytest.raises(NavigationFailure) as exc_info:
        asyncio.run(safe_goto(page, "https://nowhere.invalid", max_retries=3, backoff_seconds=0))

    error = exc_info.value
    assert page.goto_calls == 3
    assert page.reload_calls == 2
    assert error.attempts == 3
    assert error.error_kind == KIND_DNS
    assert "ERR_NAME_NOT_RESOLVED" in error.last_error
    assert error.url == "https://nowhere.invalid"


def test_safe_goto_single_attempt_never_reloads():
    page = FakePage(context=None, goto_errors=[PlaywrightError("Target closed")])

    with pytest.raises(NavigationFailure):
        asyncio.run(safe_goto(page, "https://acme.de", max_retries=1, backoff_seconds=0))

    assert page.goto_calls == 1
    assert page.reload_calls == 0


def test_navigate_uses_config_budget(config):
    config.navigation_max_retries = 2
    page = FakePage(
        context=None,
        goto_errors=[PlaywrightError("Execution context was destroyed"), PlaywrightError("boom")],
    )

    with pytest.raises(NavigationFailure) as exc_info:
        asyncio.run(navigate(page, "https://acme.de", config))

    assert page.goto_calls == 2
    assert exc_info.value.attempts == 2
    assert exc_info.value.error_kind == KIND_OTHER


@pytest.mark.parametrize(
    "error,kind",
    [
        (PlaywrightTimeout("Timeout 30000ms exceeded."), KIND_TIMEOUT),
        (PlaywrightError("net::ERR_CONNECTION_REFUSED at https://acme.de/"), KIND_CONNECTION_REFUSED),
        (PlaywrightError("getaddrinfo ENOTFOUND acme.invalid"), KIND_DNS),
        (PlaywrightError("Execution context was destroyed, most likely because of a navigation"), KIND_CONTEXT_DESTROYED),
        (PlaywrightError("Target page, context or browser has been closed"), KIND_TARGET_CLOSED),
        (PlaywrightError("navigation timeout while loading"), KIND_TIMEOUT),
        (PlaywrightError("net::ERR_ABORTED"), KIND_OTHER),
    ],
)
def test_classify_navigation_error(error, kind):
    assert classify_navigation_error(error) == kind
