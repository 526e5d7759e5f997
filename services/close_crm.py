"""
Close CRM lead source.

Reads leads (name + website) from the Close API so they can be enriched.
"""

import os
from typing import List, Optional

import requests

from runner.logging_setup import get_logger
from scrape_lead.lead_errors import UpstreamApiFailure
from scrape_lead.lead_models import LeadIdentity


logger = get_logger("close_crm")


class CloseCrmClient:
    """Client for the Close CRM lead endpoint.

    Usage:
        client = CloseCrmClient()
        leads = client.fetch_leads(limit=50)
    """

    BASE_URL = "https://api.close.com/api/v1"
    PAGE_SIZE = 100

    def __init__(self, api_key: str = None, timeout: int = 30, session: requests.Session = None):
        """Initialize Close client.

        Args:
            api_key: Close API key. If not provided, reads from CLOSE_API_KEY env var.
            timeout: HTTP timeout in seconds
            session: Optional requests session
        """
        self.api_key = api_key or os.getenv("CLOSE_API_KEY")
        if not self.api_key:
            raise ValueError("CLOSE_API_KEY not set")

        self.timeout = timeout
        self.session = session or requests.Session()
        # Close uses the API key as basic-auth username with an empty password
        self.session.auth = (self.api_key, "")
        self.session.headers.update({"Accept": "application/json"})

    def _get(self, endpoint: str, params: dict) -> dict:
        url = f"{self.BASE_URL}{endpoint}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamApiFailure(
                f"Failed to fetch leads from Close CRM API. Network error or server issue: {e}"
            ) from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("error") or "Unknown error"
            except ValueError:
                detail = "Unknown error"
            raise UpstreamApiFailure(
                f"Close CRM API Error: {response.status_code} - {detail}",
                status_code=response.status_code,
            )
        return response.json()

    def fetch_leads(self, limit: Optional[int] = None) -> List[LeadIdentity]:
        """
        Fetch leads that have a website.

        Args:
            limit: Stop after this many leads (all when None)

        Returns:
            List of LeadIdentity

        Raises:
            UpstreamApiFailure: If the API call fails
        """
        leads: List[LeadIdentity] = []
        skip = 0

        while True:
            data = self._get("/lead/", {"_skip": skip, "_limit": self.PAGE_SIZE, "_fields": "name,url"})
            rows = data.get("data") or []

            for row in rows:
                name = (row.get("name") or "").strip()
                url = (row.get("url") or "").strip()
                if not url:
                    logger.warning(f"Skipping Close lead without URL: {name or '<unnamed>'}")
                    continue
                leads.append(LeadIdentity(name=name or url, url=url))
                if limit is not None and len(leads) >= limit:
                    logger.info(f"Fetched {len(leads)} lead(s) from Close CRM")
                    return leads

            if not data.get("has_more") or not rows:
                break
            skip += len(rows)

        logger.info(f"Fetched {len(leads)} lead(s) from Close CRM")
        return leads
