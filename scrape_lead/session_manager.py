#!/usr/bin/env python3
"""
Browser Session Manager for the lead enrichment pipeline.

Each enrichment run owns exactly one BrowserSession (one Playwright instance,
one browser, one stealth context). Stages borrow tabs from it and give them
back as soon as they finish. The auth-wall recovery path may open a second,
short-lived session.

Features:
- Stealth fingerprint applied once per session context
- Resource blocking (stylesheet/image/font/media) installed on every tab
- Tab bookkeeping so every tab is closed exactly once
- Idempotent close() that releases tabs, context, browser and Playwright
"""

import itertools
from contextlib import asynccontextmanager
from typing import Callable, Optional, Set

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    async_playwright,
)

from runner.logging_setup import get_logger
from scrape_lead.lead_config import EnrichmentConfig
from scrape_lead.lead_errors import FatalSessionFailure
from scrape_lead.lead_stealth import apply_stealth, build_context_options


logger = get_logger("session_manager")

_session_ids = itertools.count(1)


class BrowserSession:
    """
    One browser instance plus the tabs currently open under it.

    Owned by a single enrichment run; never shared between runs.
    """

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        config: EnrichmentConfig,
        label: str = "primary",
    ):
        self.session_id = f"{label}-{next(_session_ids)}"
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.config = config
        self._tabs: Set[Page] = set()
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def open_tab_count(self) -> int:
        return len(self._tabs)

    async def _block_resources(self, route: Route):
        if route.request.resource_type in self.config.blocked_resource_types:
            await route.abort()
        else:
            await route.continue_()

    async def open_tab(self) -> Page:
        """
        Open a new tab with the resource-blocking policy installed.

        Request interception is per page in this design, so every tab gets
        its own route handler.

        Returns:
            Playwright page

        Raises:
            FatalSessionFailure: If the session is closed or the browser is gone
        """
        if self._closed:
            raise FatalSessionFailure(f"Session {self.session_id} is already closed")

        try:
            page = await self.context.new_page()
        except PlaywrightError as e:
            raise FatalSessionFailure(f"Session {self.session_id} could not open a tab: {e}") from e

        self._tabs.add(page)
        try:
            page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
            await page.route("**/*", self._block_resources)
        except PlaywrightError as e:
            await self.close_tab(page)
            raise FatalSessionFailure(f"Session {self.session_id} could not prepare a tab: {e}") from e

        logger.debug(f"[{self.session_id}] Opened tab ({len(self._tabs)} open)")
        return page

    async def close_tab(self, tab: Page):
        """Close a tab opened by this session. Unknown or already-closed tabs are ignored."""
        if tab not in self._tabs:
            return
        self._tabs.discard(tab)
        try:
            await tab.close()
        except PlaywrightError as e:
            logger.warning(f"[{self.session_id}] Error closing tab: {e}")
        logger.debug(f"[{self.session_id}] Closed tab ({len(self._tabs)} open)")

    @asynccontextmanager
    async def tab(self):
        """
        Borrow a tab for the duration of a block.

        Usage:
            async with session.tab() as page:
                await safe_goto(page, url)
        """
        page = await self.open_tab()
        try:
            yield page
        finally:
            await self.close_tab(page)

    async def close(self):
        """
        Close every remaining tab, then the context, browser and Playwright.

        Safe to call any number of times; cleanup errors are logged and
        do not interrupt the remaining steps.
        """
        if self._closed:
            return
        self._closed = True

        for page in list(self._tabs):
            await self.close_tab(page)

        try:
            await self.context.close()
        except Exception as e:
            logger.warning(f"[{self.session_id}] Error closing context: {e}")

        try:
            await self.browser.close()
        except Exception as e:
            logger.warning(f"[{self.session_id}] Error closing browser: {e}")

        try:
            await self.playwright.stop()
        except Exception as e:
            logger.warning(f"[{self.session_id}] Error stopping Playwright: {e}")

        logger.info(f"[{self.session_id}] Session closed")


class SessionManager:
    """
    Creates fully configured browser sessions.

    Usage:
        manager = SessionManager(config)
        session = await manager.open_session()
        try:
            async with session.tab() as page:
                ...
        finally:
            await session.close()
    """

    def __init__(
        self,
        config: Optional[EnrichmentConfig] = None,
        playwright_factory: Callable = async_playwright,
    ):
        """
        Initialize session manager.

        Args:
            config: Enrichment configuration (defaults from environment)
            playwright_factory: Returns an object whose ``start()`` yields a Playwright instance
        """
        self.config = config or EnrichmentConfig.from_env()
        self.playwright_factory = playwright_factory

    async def open_session(self, label: str = "primary") -> BrowserSession:
        """
        Launch a browser and prepare a stealth context.

        Args:
            label: Prefix for the session id in logs

        Returns:
            BrowserSession ready to open tabs

        Raises:
            FatalSessionFailure: If the engine cannot be launched (never retried here)
        """
        playwright = None
        browser = None

        try:
            playwright = await self.playwright_factory().start()
            browser = await playwright.chromium.launch(
                headless=self.config.headless,
                args=list(self.config.browser_args),
            )
            context = await browser.new_context(**build_context_options(self.config))
            await apply_stealth(context, self.config)
        except Exception as e:
            logger.error(f"Browser session could not be launched: {e}")
            if browser is not None:
                try:
                    await browser.close()
                except Exception as close_error:
                    logger.warning(f"Error closing half-launched browser: {close_error}")
            if playwright is not None:
                try:
                    await playwright.stop()
                except Exception as stop_error:
                    logger.warning(f"Error stopping Playwright: {stop_error}")
            raise FatalSessionFailure(f"Browser session could not be launched: {e}") from e

        session = BrowserSession(playwright, browser, context, self.config, label=label)
        logger.info(f"[{session.session_id}] Session opened (headless={self.config.headless})")
        return session
