"""
Pytest configuration and shared fixtures for lead-enricher tests.

Provides a resource-tracking fake Playwright stack, a zero-wait
configuration and deterministic extractor bundles.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_extractors import LeadExtractors
from scrape_lead.lead_models import PageSpeedReport, SearchRank, WebsiteDetails, empty_social_links
from scrape_lead.session_manager import SessionManager


# Test markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that drive several components together"
    )


# ----------------------------------------------------------------------
# Fake Playwright stack
# ----------------------------------------------------------------------

class FakePage:
    """Playwright page double serving HTML by URL and counting calls."""

    def __init__(self, context, pages=None, goto_errors=None):
        self.context = context
        self.pages = pages if pages is not None else {}
        self.goto_errors = list(goto_errors or [])
        self.url = ""
        self.visits = []
        self.goto_calls = 0
        self.reload_calls = 0
        self.close_calls = 0
        self.routes = []
        self.default_navigation_timeout = None
        self.div_count = 50
        self.viewport_size = {"width": 1366, "height": 768}
        self.mouse = MagicMock()
        self.mouse.move = AsyncMock()

    async def goto(self, url, timeout=None, wait_until=None):
        self.goto_calls += 1
        if self.goto_errors:
            error = self.goto_errors.pop(0)
            if error is not None:
                raise error
        self.url = url
        self.visits.append(url)

    async def reload(self, wait_until=None, timeout=None):
        self.reload_calls += 1

    async def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    def set_default_navigation_timeout(self, timeout):
        self.default_navigation_timeout = timeout

    async def content(self):
        return self.pages.get(self.url, "<html><body></body></html>")

    async def evaluate(self, script, *args):
        return self.div_count

    async def wait_for_load_state(self, state=None, timeout=None):
        return None

    async def wait_for_selector(self, selector, timeout=None):
        return None

    async def query_selector(self, selector):
        return None

    async def close(self):
        self.close_calls += 1


class FakeContext:
    def __init__(self, browser, options, pages=None, goto_errors=None):
        self.browser = browser
        self.options = options
        self.html_pages = pages
        self.goto_errors = goto_errors
        self.pages = []
        self.init_scripts = []
        self.cookies = []
        self.close_calls = 0
        self.fail_new_page = False

    async def new_page(self):
        if self.fail_new_page:
            raise PlaywrightError("Target page, context or browser has been closed")
        page = FakePage(self, self.html_pages, self.goto_errors)
        self.pages.append(page)
        return page

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)

    async def close(self):
        self.close_calls += 1


class FakeBrowser:
    def __init__(self, playwright):
        self.playwright = playwright
        self.contexts = []
        self.close_calls = 0

    async def new_context(self, **options):
        context = FakeContext(
            self, options, self.playwright.factory.pages, self.playwright.factory.goto_errors
        )
        self.contexts.append(context)
        return context

    async def close(self):
        self.close_calls += 1


class FakeChromium:
    def __init__(self, playwright):
        self.playwright = playwright
        self.launch_kwargs = None

    async def launch(self, headless=True, args=None):
        if self.playwright.factory.fail_launch:
            raise PlaywrightError("Executable doesn't exist at /ms-playwright/chromium")
        self.launch_kwargs = {"headless": headless, "args": args}
        browser = FakeBrowser(self.playwright)
        self.playwright.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, factory):
        self.factory = factory
        self.chromium = FakeChromium(self)
        self.browsers = []
        self.stop_calls = 0

    async def start(self):
        return self

    async def stop(self):
        self.stop_calls += 1


class FakePlaywrightFactory:
    """
    Stand-in for ``async_playwright``; every call starts a new instance.

    Usage:
        factory = FakePlaywrightFactory()
        manager = SessionManager(config, playwright_factory=factory)
    """

    def __init__(self, pages=None, goto_errors=None):
        self.pages = pages if pages is not None else {}
        self.goto_errors = goto_errors
        self.fail_launch = False
        self.instances = []

    def __call__(self):
        playwright = FakePlaywright(self)
        self.instances.append(playwright)
        return playwright

    @property
    def browsers(self):
        return [b for p in self.instances for b in p.browsers]

    @property
    def all_pages(self):
        return [page for b in self.browsers for c in b.contexts for page in c.pages]

    @property
    def sessions_opened(self):
        return len(self.browsers)

    def all_closed(self) -> bool:
        """Every page, context, browser and Playwright instance was closed exactly once."""
        return (
            all(page.close_calls == 1 for page in self.all_pages)
            and all(c.close_calls == 1 for b in self.browsers for c in b.contexts)
            and all(b.close_calls == 1 for b in self.browsers)
            and all(p.stop_calls == 1 for p in self.instances)
        )


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def config():
    """Configuration with every wait disabled."""
    return EnrichmentConfig(
        navigation_backoff_seconds=0,
        page_settle_seconds=0,
        auth_wall_min_wait_seconds=0,
        auth_wall_max_wait_seconds=0,
        simulate_human=False,
        pagespeed_api_key="test-key",
    )


@pytest.fixture
def playwright_factory():
    return FakePlaywrightFactory()


@pytest.fixture
def stealth_mock(monkeypatch):
    """Replace playwright-stealth application (it needs a real browser context)."""
    mock = AsyncMock()
    monkeypatch.setattr("scrape_lead.session_manager.apply_stealth", mock)
    return mock


@pytest.fixture
def session_manager(config, playwright_factory, stealth_mock):
    return SessionManager(config, playwright_factory=playwright_factory)


def make_website_details(**links) -> WebsiteDetails:
    social = empty_social_links()
    social.update(links)
    return WebsiteDetails(
        social_media_links=social,
        imprint_details={"emails": ["info@acme.de"], "phones": [], "job_titles_with_names": []},
        seo_info={"title_tag": {"exists": True, "content": "ACME"}},
    )


def make_extractors(**overrides) -> LeadExtractors:
    """
    Extractor bundle where every step succeeds with fixed data.

    Keyword arguments replace individual callables.
    """
    async def website_details(tab, url):
        return make_website_details(
            facebook="https://facebook.com/acme",
            instagram="https://instagram.com/acme",
            linkedin="https://linkedin.com/company/acme",
        )

    async def facebook_followers(tab, url):
        return "1.2K followers"

    async def facebook_page_id(tab, url):
        return "123456789"

    async def meta_ad_library(tab, page_id):
        return {"page_id": page_id, "ad_status": "Active ads found", "started_running_text": None}

    async def instagram_followers(tab, url):
        return {"followers_count": 961, "following_count": 57, "posts_count": 497}

    async def linkedin_data(tab, url):
        return {"company_name": "ACME GmbH", "industry": "Software", "employees": []}

    async def ad_transparency(tab, url):
        return {"domain": "acme.de", "advertiser_name": "ACME GmbH"}

    def page_speed(url, strategy):
        return PageSpeedReport(strategy=strategy, success=True, metrics={"performance_score": 90})

    async def search_rank(tab, name, url):
        return SearchRank(rank=1, matching_urls=[url])

    callables = dict(
        website_details=website_details,
        facebook_followers=facebook_followers,
        facebook_page_id=facebook_page_id,
        meta_ad_library=meta_ad_library,
        instagram_followers=instagram_followers,
        linkedin_data=linkedin_data,
        ad_transparency=ad_transparency,
        page_speed=page_speed,
        search_rank=search_rank,
    )
    callables.update(overrides)
    return LeadExtractors(**callables)


@pytest.fixture
def extractors_factory():
    """Build an extractor bundle, overriding individual steps by keyword."""
    return make_extractors


@pytest.fixture
def website_details_factory():
    """Build WebsiteDetails with the given social links."""
    return make_website_details
