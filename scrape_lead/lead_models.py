"""
Result and state types for the lead enrichment pipeline.

EnrichmentResult is always fully shaped: every per-stage field exists from
the moment the result is created, holding None (or an empty value) until a
stage fills it in.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


# Social platforms discovered on the lead website, in report order
SOCIAL_PLATFORMS = (
    "facebook",
    "instagram",
    "linkedin",
    "twitter",
    "youtube",
    "pinterest",
    "xing",
)

# Stage names in execution/report order
STAGE_WEBSITE = "website_details"
STAGE_FACEBOOK = "facebook"
STAGE_INSTAGRAM = "instagram"
STAGE_LINKEDIN = "linkedin"
STAGE_AD_TRANSPARENCY = "ad_transparency"
STAGE_PAGE_SPEED = "page_speed"
STAGE_SEARCH_RANK = "search_rank"

STAGE_ORDER = (
    STAGE_WEBSITE,
    STAGE_FACEBOOK,
    STAGE_INSTAGRAM,
    STAGE_LINKEDIN,
    STAGE_AD_TRANSPARENCY,
    STAGE_PAGE_SPEED,
    STAGE_SEARCH_RANK,
)

# Result keys (as in EnrichmentResult.to_dict) filled by each stage
STAGE_FIELDS = {
    STAGE_WEBSITE: ("social_media_links", "imprint_details", "seo_info"),
    STAGE_FACEBOOK: ("facebook_followers", "meta_ad_library"),
    STAGE_INSTAGRAM: ("instagram_followers",),
    STAGE_LINKEDIN: ("linkedin_data",),
    STAGE_AD_TRANSPARENCY: ("google_ad_transparency",),
    STAGE_PAGE_SPEED: ("page_speed",),
    STAGE_SEARCH_RANK: ("google_search",),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_social_links() -> Dict[str, Optional[str]]:
    return {platform: None for platform in SOCIAL_PLATFORMS}


@dataclass(frozen=True)
class LeadIdentity:
    """A company to enrich: its name and candidate website URL."""
    name: str
    url: str

    def __str__(self) -> str:
        return f"{self.name} <{self.url}>"


@dataclass
class StageOutcome:
    """Diagnostic record of one stage in one run."""
    stage_name: str
    attempted: bool = False
    succeeded: bool = False
    error_message: Optional[str] = None

    @classmethod
    def skipped(cls, stage_name: str, reason: str) -> "StageOutcome":
        return cls(stage_name=stage_name, attempted=False, succeeded=False, error_message=reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_name": self.stage_name,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "error_message": self.error_message,
        }


@dataclass
class EvasionAttempt:
    """Auth-wall recovery bookkeeping for one blocked stage."""
    count: int = 0
    window_ms: int = 0


@dataclass
class WebsiteDetails:
    """What the website stage found on the lead's own site."""
    social_media_links: Dict[str, Optional[str]] = field(default_factory=empty_social_links)
    imprint_details: Optional[Dict[str, Any]] = None
    seo_info: Optional[Dict[str, Any]] = None

    @property
    def is_empty(self) -> bool:
        return (
            not any(self.social_media_links.values())
            and self.imprint_details is None
            and self.seo_info is None
        )


@dataclass
class PageSpeedReport:
    """
    PageSpeed result for one strategy.

    Exactly one of ``metrics`` and ``message`` is set: metrics on success,
    an error message when the API call failed.
    """
    strategy: str
    success: bool
    metrics: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "success": self.success,
            "metrics": self.metrics,
            "message": self.message,
        }


@dataclass
class SearchRank:
    """Position of the lead's own site in the search results for its name."""
    rank: Optional[int] = None
    matching_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"rank": self.rank, "matching_urls": list(self.matching_urls)}


@dataclass
class EnrichmentResult:
    """
    Aggregated enrichment output for one lead.

    Written only by the orchestrator. ``to_dict()`` always emits every key,
    so consumers only ever need null checks.
    """
    identity: LeadIdentity
    social_media_links: Dict[str, Optional[str]] = field(default_factory=empty_social_links)
    imprint_details: Optional[Dict[str, Any]] = None
    seo_info: Optional[Dict[str, Any]] = None
    facebook_followers: Optional[str] = None
    instagram_followers: Optional[Dict[str, Optional[int]]] = None
    linkedin_data: Optional[Dict[str, Any]] = None
    google_ad_transparency: Optional[Dict[str, Any]] = None
    meta_ad_library: Optional[Dict[str, Any]] = None
    page_speed_mobile: Optional[PageSpeedReport] = None
    page_speed_desktop: Optional[PageSpeedReport] = None
    google_search: SearchRank = field(default_factory=SearchRank)
    stage_outcomes: List[StageOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    fatal_error: Optional[str] = None

    @classmethod
    def failed(cls, identity: LeadIdentity, error: str) -> "EnrichmentResult":
        """Result for a lead whose enrichment could not even start."""
        now = utcnow()
        return cls(
            identity=identity,
            stage_outcomes=[StageOutcome.skipped(name, error) for name in STAGE_ORDER],
            started_at=now,
            finished_at=now,
            fatal_error=error,
        )

    def outcome(self, stage_name: str) -> Optional[StageOutcome]:
        for outcome in self.stage_outcomes:
            if outcome.stage_name == stage_name:
                return outcome
        return None

    @property
    def succeeded_stages(self) -> List[str]:
        return [o.stage_name for o in self.stage_outcomes if o.succeeded]

    def set_social_links(self, links: Dict[str, Optional[str]]) -> None:
        merged = empty_social_links()
        for platform in SOCIAL_PLATFORMS:
            merged[platform] = links.get(platform) or None
        self.social_media_links = merged

    def to_dict(self, include_timestamps: bool = True) -> Dict[str, Any]:
        data = {
            "name": self.identity.name,
            "url": self.identity.url,
            "social_media_links": dict(self.social_media_links),
            "imprint_details": self.imprint_details,
            "seo_info": self.seo_info,
            "facebook_followers": self.facebook_followers,
            "instagram_followers": self.instagram_followers,
            "linkedin_data": self.linkedin_data,
            "google_ad_transparency": self.google_ad_transparency,
            "meta_ad_library": self.meta_ad_library,
            "page_speed": {
                "mobile": self.page_speed_mobile.to_dict() if self.page_speed_mobile else None,
                "desktop": self.page_speed_desktop.to_dict() if self.page_speed_desktop else None,
            },
            "google_search": self.google_search.to_dict(),
            "stage_outcomes": [o.to_dict() for o in self.stage_outcomes],
            "fatal_error": self.fatal_error,
        }
        if include_timestamps:
            data["started_at"] = self.started_at.isoformat() if self.started_at else None
            data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data

    def __str__(self) -> str:
        return (
            f"EnrichmentResult({self.identity.name}: "
            f"{len(self.succeeded_stages)}/{len(STAGE_ORDER)} stages ok"
            f"{', fatal: ' + self.fatal_error if self.fatal_error else ''})"
        )
