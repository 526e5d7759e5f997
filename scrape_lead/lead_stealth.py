"""
Lead Enrichment - Stealth & Anti-Detection Utilities

Fingerprint settings applied to every browser session, plus the human-like
interaction helpers used while pages are read.

Features:
- Desktop Windows Chrome user agent rotation
- Spoofed navigator platform/vendor/language(s) and WebGL vendor/renderer
- playwright-stealth patches on every session context
- Incremental scrolling and mouse paths with random timing
"""

import asyncio
import random
from typing import Any, Dict, List, Optional, Tuple

from playwright.async_api import BrowserContext, Page
from playwright_stealth import Stealth

from scrape_lead.lead_config import EnrichmentConfig


# Desktop Chrome on Windows only, so the UA agrees with navigator.platform
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/128.0.0.0 Safari/537.36",
]

# Common desktop resolutions
VIEWPORTS = [
    {"width": 1920, "height": 1080},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
    {"width": 1366, "height": 768},
]

WEBGL_VENDOR = "Intel Inc."
WEBGL_RENDERER = "Intel Iris OpenGL Engine"


def get_random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def build_context_options(config: EnrichmentConfig) -> Dict[str, Any]:
    """
    Build the keyword arguments for ``browser.new_context()``.

    Args:
        config: Enrichment configuration

    Returns:
        Dict of Playwright context options
    """
    return {
        "user_agent": get_random_user_agent(),
        "viewport": random.choice(VIEWPORTS),
        "locale": config.locale,
        "timezone_id": config.timezone,
        "geolocation": config.get_geolocation(),
        "permissions": ["geolocation"],
        "extra_http_headers": {
            "Accept-Language": build_accept_language(config.languages),
        },
    }


def build_accept_language(languages: Tuple[str, ...]) -> str:
    """
    Build an Accept-Language header with descending q-values.

    Example:
        >>> build_accept_language(("de-DE", "de", "en"))
        'de-DE,de;q=0.9,en;q=0.8'
    """
    parts = []
    for index, language in enumerate(languages):
        if index == 0:
            parts.append(language)
        else:
            parts.append(f"{language};q={max(0.1, 1.0 - index / 10):.1f}")
    return ",".join(parts)


def get_fingerprint_script(config: EnrichmentConfig) -> str:
    """Init script spoofing navigator values that playwright-stealth leaves alone."""
    languages = ", ".join(f"'{lang}'" for lang in config.languages)
    primary = config.languages[0] if config.languages else config.locale
    return f"""
        Object.defineProperty(navigator, 'platform', {{ get: () => '{config.platform}' }});
        Object.defineProperty(navigator, 'vendor', {{ get: () => '{config.vendor}' }});
        Object.defineProperty(navigator, 'language', {{ get: () => '{primary}' }});
        Object.defineProperty(navigator, 'languages', {{ get: () => [{languages}] }});
        Object.defineProperty(navigator, 'webdriver', {{ get: () => undefined }});

        const originalQuery = window.navigator.permissions.query;
        window.navigator.permissions.query = (parameters) => (
            parameters.name === 'notifications'
                ? Promise.resolve({{ state: 'denied' }})
                : originalQuery(parameters)
        );

        const getParameter = WebGLRenderingContext.prototype.getParameter;
        WebGLRenderingContext.prototype.getParameter = function (parameter) {{
            if (parameter === 37445) return '{WEBGL_VENDOR}';
            if (parameter === 37446) return '{WEBGL_RENDERER}';
            return getParameter.call(this, parameter);
        }};
    """


async def apply_stealth(context: BrowserContext, config: EnrichmentConfig):
    """
    Apply stealth measures to a browser context.

    Every page later opened in the context inherits the init scripts.

    Args:
        context: Playwright browser context
        config: Enrichment configuration
    """
    languages = tuple(config.languages[:2]) if len(config.languages) >= 2 else (config.locale, "en")
    stealth = Stealth(
        navigator_platform_override=config.platform,
        navigator_languages_override=languages,
        webgl_vendor_override=WEBGL_VENDOR,
        webgl_renderer_override=WEBGL_RENDERER,
    )
    await stealth.apply_stealth_async(context)
    await context.add_init_script(get_fingerprint_script(config))


async def human_like_delay(min_ms: int = 100, max_ms: int = 500):
    """
    Add human-like random delay.

    Args:
        min_ms: Minimum delay in milliseconds
        max_ms: Maximum delay in milliseconds
    """
    delay_ms = random.uniform(min_ms, max_ms)
    await asyncio.sleep(delay_ms / 1000)


async def mimic_scroll(
    page: Page,
    distance: int = 1000,
    min_step: int = 30,
    max_step: int = 70,
    min_delay: int = 50,
    max_delay: int = 150,
):
    """
    Scroll down in small random steps until ``distance`` pixels were covered.

    Args:
        page: Playwright page
        distance: Total pixels to scroll
        min_step: Smallest step in pixels
        max_step: Largest step in pixels
        min_delay: Smallest pause between steps (ms)
        max_delay: Largest pause between steps (ms)
    """
    scrolled = 0
    while scrolled < distance:
        step = random.randint(min_step, max_step)
        await page.evaluate("(step) => window.scrollBy(0, step)", step)
        scrolled += step
        await human_like_delay(min_delay, max_delay)


def random_mouse_path(
    width: int = 1366,
    height: int = 768,
    points: int = 8,
) -> List[Tuple[int, int]]:
    """Random path of screen coordinates inside the viewport margins."""
    return [
        (random.randint(50, max(51, width - 50)), random.randint(50, max(51, height - 50)))
        for _ in range(points)
    ]


async def mimic_mouse_movement(
    page: Page,
    path: Optional[List[Tuple[int, int]]] = None,
    min_delay: int = 50,
    max_delay: int = 150,
):
    """
    Move the mouse along ``path`` with a random pause between points.

    Args:
        page: Playwright page
        path: Coordinates to visit (random inside the viewport when omitted)
        min_delay: Smallest pause between moves (ms)
        max_delay: Largest pause between moves (ms)
    """
    if path is None:
        viewport = page.viewport_size or {"width": 1366, "height": 768}
        path = random_mouse_path(viewport["width"], viewport["height"])

    for x, y in path:
        await page.mouse.move(x, y, steps=random.randint(5, 15))
        await human_like_delay(min_delay, max_delay)


async def browse_like_human(page: Page, config: EnrichmentConfig, distance: int = 2000):
    """Scroll and wiggle the mouse unless human simulation is disabled."""
    if not config.simulate_human:
        return
    await mimic_mouse_movement(page)
    await mimic_scroll(page, distance)
