"""
PageSpeed Insights client.

Fetches Lighthouse metrics for one URL and strategy (mobile or desktop).
fetch() never raises: API failures and malformed bodies become a PageSpeedReport with
an error message, so one failed strategy never affects the other.
"""

import os
import re
from typing import Any, Dict, Optional

import requests

from runner.logging_setup import get_logger
from scrape_lead.lead_errors import UpstreamApiFailure
from scrape_lead.lead_models import PageSpeedReport


logger = get_logger("pagespeed_client")

# Good-experience thresholds (seconds)
FCP_LIMIT = 2.2
SPEED_INDEX_LIMIT = 3.4
TTI_LIMIT = 7.3


def parse_seconds(display_value: Optional[str]) -> Optional[float]:
    """
    Parse a Lighthouse display value into seconds.

    Examples:
        >>> parse_seconds("2.2 s")
        2.2
        >>> parse_seconds("850 ms")
        0.85
    """
    if not display_value:
        return None
    match = re.search(r"([\d.,]+)\s*(ms|s)?", display_value.replace("\xa0", " "))
    if not match:
        return None
    value = float(match.group(1).replace(",", ""))
    return value / 1000 if match.group(2) == "ms" else value


def describe_performance(fcp: Optional[float], speed_index: Optional[float], tti: Optional[float]) -> str:
    """Compare the three timings against their thresholds."""
    parts = []
    for label, measured, limit in (
        ("FCP", fcp, FCP_LIMIT),
        ("Speed Index", speed_index, SPEED_INDEX_LIMIT),
        ("TTI", tti, TTI_LIMIT),
    ):
        if measured is None:
            parts.append(f"{label} was not measured.")
        elif measured <= limit:
            parts.append(f"{label} is within the limit ({limit} seconds). Measured: {measured} seconds.")
        else:
            parts.append(f"{label} exceeds the limit ({limit} seconds). Measured: {measured} seconds.")
    return " ".join(parts)


def extract_metrics(lighthouse: Dict[str, Any], strategy: str) -> Dict[str, Any]:
    """
    Build the metrics dict from a Lighthouse result.

    Args:
        lighthouse: ``lighthouseResult`` object of the API response
        strategy: "mobile" or "desktop"

    Returns:
        Metrics dict
    """
    audits = lighthouse.get("audits", {})
    score = lighthouse.get("categories", {}).get("performance", {}).get("score")

    def display(audit: str) -> Optional[str]:
        return audits.get(audit, {}).get("displayValue")

    metrics = {
        "performance_score": round(score * 100) if score is not None else None,
        "first_contentful_paint": display("first-contentful-paint"),
        "speed_index": display("speed-index"),
        "time_to_interactive": display("interactive"),
        "mobile_friendly": (
            ("Yes" if audits.get("viewport", {}).get("score") == 1 else "No")
            if strategy == "mobile" else "N/A"
        ),
    }
    metrics["performance_description"] = describe_performance(
        parse_seconds(metrics["first_contentful_paint"]),
        parse_seconds(metrics["speed_index"]),
        parse_seconds(metrics["time_to_interactive"]),
    )
    return metrics


class PageSpeedClient:
    """Client for the PageSpeed Insights v5 API.

    Usage:
        client = PageSpeedClient()
        report = client.fetch("https://example.com", "mobile")
        if report.success:
            print(report.metrics["performance_score"])
    """

    API_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

    def __init__(self, api_key: str = None, timeout: int = 90, session: requests.Session = None):
        """Initialize PageSpeed client.

        Args:
            api_key: API key. If not provided, reads GOOGLE_PAGESPEED_API_KEY.
            timeout: HTTP timeout in seconds (Lighthouse runs are slow)
            session: Optional requests session (shared connection pool)
        """
        self.api_key = api_key or os.getenv("GOOGLE_PAGESPEED_API_KEY")
        self.timeout = timeout
        self.session = session or requests.Session()
        if not self.api_key:
            logger.warning("GOOGLE_PAGESPEED_API_KEY not set, using unauthenticated quota")

    def _request(self, url: str, strategy: str) -> Dict[str, Any]:
        """Call the API and return its JSON body.

        Raises:
            UpstreamApiFailure: On any HTTP or transport error
        """
        params = {"url": url, "strategy": strategy}
        if self.api_key:
            params["key"] = self.api_key

        try:
            response = self.session.get(self.API_URL, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamApiFailure(
                f"Unable to fetch PageSpeed data for the URL: {url}. Error: {e}"
            ) from e

        if response.status_code == 400:
            try:
                detail = response.json().get("error", {}).get("message", "bad request")
            except ValueError:
                detail = "bad request"
            raise UpstreamApiFailure(
                f"PageSpeed API returned an error for the URL: {detail}", status_code=400
            )
        if response.status_code in (500, 503):
            raise UpstreamApiFailure(
                "PageSpeed API is currently unavailable. Please try again later.",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise UpstreamApiFailure(
                f"Unable to fetch PageSpeed data for the URL: {url}. "
                f"Error: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamApiFailure(f"PageSpeed API returned invalid JSON for {url}") from e

    def fetch(self, url: str, strategy: str) -> PageSpeedReport:
        """
        Fetch PageSpeed metrics for one strategy.

        Args:
            url: Page to analyze
            strategy: "mobile" or "desktop"

        Returns:
            PageSpeedReport with metrics, or with an error message
        """
        try:
            data = self._request(url, strategy)
            lighthouse = data.get("lighthouseResult")
            if not lighthouse:
                raise UpstreamApiFailure("No data available for the provided URL.")
            metrics = extract_metrics(lighthouse, strategy)
        except UpstreamApiFailure as e:
            logger.warning(f"PageSpeed ({strategy}) failed for {url}: {e}")
            return PageSpeedReport(strategy=strategy, success=False, message=str(e))
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.warning(f"PageSpeed ({strategy}) returned an unexpected body for {url}: {e}", exc_info=True)
            return PageSpeedReport(
                strategy=strategy,
                success=False,
                message=f"PageSpeed API returned unexpected data for the URL: {url}. Error: {e}",
            )

        logger.info(f"PageSpeed ({strategy}) for {url}: score {metrics['performance_score']}")
        return PageSpeedReport(strategy=strategy, success=True, metrics=metrics)
