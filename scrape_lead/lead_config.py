"""
Lead Enrichment - Configuration Management

Centralized configuration for the lead enrichment pipeline.

Features:
- Browser launch and fingerprint settings
- Navigation retry budget
- Auth-wall evasion window
- Stage and lead concurrency limits
- External API keys and Result Sink settings

Every value can be overridden through the environment (or a .env file).
"""

import os
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv


# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


@dataclass
class EnrichmentConfig:
    """Configuration for one enrichment process (shared by every lead run)."""

    # ===== BROWSER =====

    headless: bool = True

    browser_args: List[str] = field(default_factory=lambda: [
        "--disable-blink-features=AutomationControlled",
        "--disable-dev-shm-usage",
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-web-security",
        "--disable-features=IsolateOrigins,site-per-process",
    ])

    # Resource classes aborted on every tab
    blocked_resource_types: Tuple[str, ...] = ("stylesheet", "image", "font", "media")

    # ===== FINGERPRINT =====

    locale: str = "de-DE"
    languages: Tuple[str, ...] = ("de-DE", "de", "en")
    platform: str = "Win32"
    vendor: str = "Google Inc."
    timezone: str = "Europe/Berlin"
    latitude: float = 52.52
    longitude: float = 13.405

    # ===== NAVIGATION =====

    navigation_timeout_ms: int = 60000  # 60 seconds
    navigation_max_retries: int = 3
    navigation_backoff_seconds: float = 2.0  # grows linearly per attempt

    # ===== WEBSITE STAGE =====

    page_settle_seconds: float = 10.0
    preferred_site_locale: str = "de"  # empty string disables the /en rewrite

    # Country used for Ads Transparency and the Meta Ad Library
    ad_region: str = "DE"

    # ===== AUTH WALL EVASION =====

    auth_wall_max_attempts: int = 2
    auth_wall_min_wait_seconds: float = 60.0
    auth_wall_max_wait_seconds: float = 120.0

    # ===== CONCURRENCY =====

    stage_concurrency: int = 1  # 1 = stages after the website stage run sequentially
    max_concurrent_leads: int = 2

    # ===== HUMAN BEHAVIOUR =====

    # Set to False in tests to skip simulated scrolling and mouse paths
    simulate_human: bool = True

    # ===== EXTERNAL APIS =====

    pagespeed_api_key: Optional[str] = None
    pagespeed_timeout_seconds: int = 90
    close_api_key: Optional[str] = None

    # ===== RESULT SINK =====

    database_url: str = "sqlite:///leads.db"
    lead_refresh_days: int = 30

    @classmethod
    def from_env(cls) -> "EnrichmentConfig":
        """Build a configuration from environment variables, falling back to defaults."""
        defaults = cls()
        languages = os.getenv("BROWSER_LANGUAGES")

        return cls(
            headless=_env_bool("BROWSER_HEADLESS", defaults.headless),
            locale=os.getenv("BROWSER_LOCALE", defaults.locale),
            languages=(
                tuple(lang.strip() for lang in languages.split(",") if lang.strip())
                if languages else defaults.languages
            ),
            platform=os.getenv("BROWSER_PLATFORM", defaults.platform),
            vendor=os.getenv("BROWSER_VENDOR", defaults.vendor),
            timezone=os.getenv("BROWSER_TIMEZONE", defaults.timezone),
            latitude=_env_float("GEO_LATITUDE", defaults.latitude),
            longitude=_env_float("GEO_LONGITUDE", defaults.longitude),
            navigation_timeout_ms=_env_int("NAVIGATION_TIMEOUT_MS", defaults.navigation_timeout_ms),
            navigation_max_retries=_env_int("NAVIGATION_MAX_RETRIES", defaults.navigation_max_retries),
            navigation_backoff_seconds=_env_float(
                "NAVIGATION_BACKOFF_SECONDS", defaults.navigation_backoff_seconds
            ),
            page_settle_seconds=_env_float("PAGE_SETTLE_SECONDS", defaults.page_settle_seconds),
            preferred_site_locale=os.getenv("PREFERRED_SITE_LOCALE", defaults.preferred_site_locale),
            ad_region=os.getenv("AD_REGION", defaults.ad_region),
            auth_wall_max_attempts=_env_int("AUTH_WALL_MAX_ATTEMPTS", defaults.auth_wall_max_attempts),
            auth_wall_min_wait_seconds=_env_float(
                "AUTH_WALL_MIN_WAIT_SECONDS", defaults.auth_wall_min_wait_seconds
            ),
            auth_wall_max_wait_seconds=_env_float(
                "AUTH_WALL_MAX_WAIT_SECONDS", defaults.auth_wall_max_wait_seconds
            ),
            stage_concurrency=_env_int("STAGE_CONCURRENCY", defaults.stage_concurrency),
            max_concurrent_leads=_env_int("MAX_CONCURRENT_LEADS", defaults.max_concurrent_leads),
            pagespeed_api_key=os.getenv("GOOGLE_PAGESPEED_API_KEY") or None,
            pagespeed_timeout_seconds=_env_int(
                "PAGESPEED_TIMEOUT_SECONDS", defaults.pagespeed_timeout_seconds
            ),
            close_api_key=os.getenv("CLOSE_API_KEY") or None,
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            lead_refresh_days=_env_int("LEAD_REFRESH_DAYS", defaults.lead_refresh_days),
        )

    def get_evasion_wait(self) -> float:
        """Get randomized wait (seconds) before retrying a blocked stage."""
        return random.uniform(self.auth_wall_min_wait_seconds, self.auth_wall_max_wait_seconds)

    def get_geolocation(self) -> Dict[str, float]:
        """Geolocation dict in the shape Playwright contexts expect."""
        return {"latitude": self.latitude, "longitude": self.longitude}

