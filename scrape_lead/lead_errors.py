"""
Error taxonomy for the lead enrichment pipeline.

Only FatalSessionFailure and EnrichmentCancelled ever leave
LeadEnrichmentOrchestrator.enrich_lead; every other error is recovered at
the stage boundary and recorded in the result.
"""

from typing import Optional


class LeadEnrichmentError(Exception):
    """Base class for all pipeline errors."""


class NavigationFailure(LeadEnrichmentError):
    """Navigation still failing after every retry was used."""

    def __init__(self, url: str, attempts: int, error_kind: str, last_error: str):
        self.url = url
        self.attempts = attempts
        self.error_kind = error_kind
        self.last_error = last_error
        super().__init__(
            f"Navigation to {url} failed after {attempts} attempt(s) "
            f"[{error_kind}]: {last_error}"
        )


class AuthWallBlocked(LeadEnrichmentError):
    """A third-party site answered with an auth wall or interstitial."""

    def __init__(self, url: str, reason: str = "auth wall detected"):
        self.url = url
        self.reason = reason
        super().__init__(f"Blocked at {url}: {reason}")


class ExtractionFailure(LeadEnrichmentError):
    """Expected page structure was not found."""


class UpstreamApiFailure(LeadEnrichmentError):
    """An external HTTP API answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class FatalSessionFailure(LeadEnrichmentError):
    """The browser engine could not be launched or crashed irrecoverably."""


class EnrichmentCancelled(LeadEnrichmentError):
    """The caller cancelled the run; owned sessions were released first."""
