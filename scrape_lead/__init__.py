"""
Lead enrichment core.

This module contains:
- Configuration (EnrichmentConfig)
- Result and state types
- Browser session management and resilient navigation
- Auth-wall evasion
- The enrichment orchestrator
"""

from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_errors import (
    AuthWallBlocked,
    EnrichmentCancelled,
    ExtractionFailure,
    FatalSessionFailure,
    LeadEnrichmentError,
    NavigationFailure,
    UpstreamApiFailure,
)
from scrape_lead.lead_models import (
    STAGE_ORDER,
    EnrichmentResult,
    EvasionAttempt,
    LeadIdentity,
    PageSpeedReport,
    SearchRank,
    StageOutcome,
    WebsiteDetails,
)
from scrape_lead.session_manager import BrowserSession, SessionManager
from scrape_lead.navigation import safe_goto
from scrape_lead.auth_wall import AuthWallEvasion, EvasionOutcome, EvasionState
from scrape_lead.lead_extractors import LeadExtractors
from scrape_lead.orchestrator import LeadEnrichmentOrchestrator, PipelineStage

__version__ = "0.1.0"

__all__ = [
    "EnrichmentConfig",
    "AuthWallBlocked",
    "EnrichmentCancelled",
    "ExtractionFailure",
    "FatalSessionFailure",
    "LeadEnrichmentError",
    "NavigationFailure",
    "UpstreamApiFailure",
    "STAGE_ORDER",
    "EnrichmentResult",
    "EvasionAttempt",
    "LeadIdentity",
    "PageSpeedReport",
    "SearchRank",
    "StageOutcome",
    "WebsiteDetails",
    "BrowserSession",
    "SessionManager",
    "safe_goto",
    "AuthWallEvasion",
    "EvasionOutcome",
    "EvasionState",
    "LeadExtractors",
    "LeadEnrichmentOrchestrator",
    "PipelineStage",
]
