"""
Navigation with bounded retries.

safe_goto() is the single "go to URL" primitive used by every stage. It has
no knowledge of page content: it only retries transport-level Playwright
failures, reloading the tab and backing off between attempts.
"""

import asyncio
from typing import Optional

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeout

from runner.logging_setup import get_logger
from scrape_lead.lead_errors import NavigationFailure


logger = get_logger("navigation")

# Error kinds (logging only, all are retried the same way)
KIND_TIMEOUT = "timeout"
KIND_CONNECTION_REFUSED = "connection_refused"
KIND_DNS = "dns"
KIND_CONTEXT_DESTROYED = "context_destroyed"
KIND_TARGET_CLOSED = "target_closed"
KIND_OTHER = "other"

_MESSAGE_KINDS = [
    ("ERR_CONNECTION_REFUSED", KIND_CONNECTION_REFUSED),
    ("ECONNREFUSED", KIND_CONNECTION_REFUSED),
    ("ERR_NAME_NOT_RESOLVED", KIND_DNS),
    ("ENOTFOUND", KIND_DNS),
    ("Execution context was destroyed", KIND_CONTEXT_DESTROYED),
    ("Target closed", KIND_TARGET_CLOSED),
    ("has been closed", KIND_TARGET_CLOSED),
]


def classify_navigation_error(error: BaseException) -> str:
    """
    Name the kind of a navigation failure.

    Args:
        error: Exception raised by page.goto()

    Returns:
        One of the KIND_* constants
    """
    if isinstance(error, PlaywrightTimeout):
        return KIND_TIMEOUT

    message = str(error)
    for marker, kind in _MESSAGE_KINDS:
        if marker.lower() in message.lower():
            return kind
    if "timeout" in message.lower():
        return KIND_TIMEOUT
    return KIND_OTHER


async def safe_goto(
    tab: Page,
    url: str,
    timeout_ms: Optional[int] = None,
    max_retries: int = 3,
    backoff_seconds: float = 2.0,
    wait_until: str = "networkidle",
):
    """
    Navigate ``tab`` to ``url``, retrying Playwright failures.

    Before each retry the tab is reloaded to a clean document
    (``domcontentloaded``) and the delay grows by ``backoff_seconds`` per
    attempt.

    Args:
        tab: Playwright page
        url: Target URL
        timeout_ms: Per-attempt timeout (None keeps the page default, 0 disables)
        max_retries: Total number of attempts
        backoff_seconds: Base of the increasing delay between attempts
        wait_until: Load state that ends a successful navigation

    Raises:
        NavigationFailure: After the last attempt failed, carrying its message
    """
    attempts = max(1, max_retries)
    last_error: Optional[PlaywrightError] = None
    last_kind = KIND_OTHER

    for attempt in range(1, attempts + 1):
        try:
            logger.debug(f"Navigating to {url} (attempt {attempt}/{attempts})")
            await tab.goto(url, timeout=timeout_ms, wait_until=wait_until)
            return
        except PlaywrightError as e:
            last_error = e
            last_kind = classify_navigation_error(e)
            logger.warning(
                f"Navigation to {url} failed on attempt {attempt}/{attempts} [{last_kind}]: {e}"
            )

        if attempt == attempts:
            break

        try:
            await tab.reload(wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightError as reload_error:
            logger.debug(f"Reload before retry failed for {url}: {reload_error}")

        delay = backoff_seconds * attempt
        if delay > 0:
            logger.debug(f"Waiting {delay:.1f}s before retrying {url}")
            await asyncio.sleep(delay)

    logger.error(f"Giving up on {url} after {attempts} attempt(s) [{last_kind}]")
    raise NavigationFailure(url, attempts, last_kind, str(last_error)) from last_error


async def navigate(tab: Page, url: str, config, wait_until: str = "networkidle"):
    """safe_goto() with the timeout and retry budget taken from an EnrichmentConfig."""
    await safe_goto(
        tab,
        url,
        timeout_ms=config.navigation_timeout_ms,
        max_retries=config.navigation_max_retries,
        backoff_seconds=config.navigation_backoff_seconds,
        wait_until=wait_until,
    )
