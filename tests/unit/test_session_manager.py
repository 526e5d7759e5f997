#!/usr/bin/env python3
"""
Unit tests for browser session management.

Tests:
- Session launch with stealth context options
- Resource blocking installed on every tab
- Tabs closed exactly once, close() idempotent
- Launch failure -> FatalSessionFailure with cleanup
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from scrape_lead.lead_errors import FatalSessionFailure


def test_open_session_configures_context(session_manager, playwright_factory, stealth_mock, config):
    async def run():
        session = await session_manager.open_session()
        await session.close()
        return session

    session = asyncio.run(run())

    browser = playwright_factory.browsers[0]
    options = browser.contexts[0].options
    assert playwright_factory.instances[0].chromium.launch_kwargs["headless"] is True
    assert options["locale"] == "de-DE"
    assert options["timezone_id"] == "Europe/Berlin"
    assert options["geolocation"] == {"latitude": 52.52, "longitude": 13.405}
    assert options["extra_http_headers"]["Accept-Language"] == "de-DE,de;q=0.9,en;q=0.8"
    assert "Windows NT" in options["user_agent"]
    stealth_mock.assert_awaited_once()
    assert session.session_id.startswith("primary-")


def test_tab_context_manager_closes_tab(session_manager, playwright_factory, config):
    async def run():
        session = await session_manager.open_session()
        try:
            async with session.tab() as page:
                assert session.open_tab_count == 1
                assert page.default_navigation_timeout == config.navigation_timeout_ms
                assert page.routes and page.routes[0][0] == "**/*"
            assert session.open_tab_count == 0
        finally:
            await session.close()

    asyncio.run(run())

    assert len(playwright_factory.all_pages) == 1
    assert playwright_factory.all_closed()


def test_tab_closed_when_block_raises(session_manager, playwright_factory):
    async def run():
        session = await session_manager.open_session()
        try:
            async with session.tab():
                raise RuntimeError("extractor crashed")
        finally:
            await session.close()

    with pytest.raises(RuntimeError):
        asyncio.run(run())

    assert playwright_factory.all_closed()


def test_close_is_idempotent_and_closes_open_tabs(session_manager, playwright_factory):
    async def run():
        session = await session_manager.open_session()
        first = await session.open_tab()
        await session.open_tab()
        await session.close_tab(first)
        await session.close_tab(first)
        await session.close()
        await session.close()
        return session

    session = asyncio.run(run())

    assert session.is_closed
    assert len(playwright_factory.all_pages) == 2
    assert playwright_factory.all_closed()


def test_open_tab_after_close_is_fatal(session_manager):
    async def run():
        session = await session_manager.open_session()
        await session.close()
        await session.open_tab()

    with pytest.raises(FatalSessionFailure):
        asyncio.run(run())


def test_open_tab_on_dead_browser_is_fatal(session_manager, playwright_factory):
    async def run():
        session = await session_manager.open_session()
        session.context.fail_new_page = True
        try:
            await session.open_tab()
        finally:
            await session.close()

    with pytest.raises(FatalSessionFailure):
        asyncio.run(run())

    assert playwright_factory.all_closed()


def test_launch_failure_is_fatal(session_manager, playwright_factory):
    playwright_factory.fail_launch = True

    with pytest.raises(FatalSessionFailure) as exc_info:
        asyncio.run(session_manager.open_session())

    assert "could not be launched" in str(exc_info.value)
    assert playwright_factory.instances[0].stop_calls == 1
    assert playwright_factory.browsers == []


def test_stealth_failure_closes_browser(session_manager, playwright_factory, stealth_mock):
    stealth_mock.side_effect = RuntimeError("stealth script rejected")

    with pytest.raises(FatalSessionFailure):
        asyncio.run(session_manager.open_session())

    assert playwright_factory.browsers[0].close_calls == 1
    assert playwright_factory.instances[0].stop_calls == 1


@pytest.mark.parametrize(
    "resource_type,aborted",
    [("image", True), ("stylesheet", True), ("font", True), ("media", True), ("document", False), ("script", False)],
)
def test_resource_blocking(session_manager, resource_type, aborted):
    route = SimpleNamespace(
        request=SimpleNamespace(resource_type=resource_type),
        abort=AsyncMock(),
        continue_=AsyncMock(),
    )

    async def run():
        session = await session_manager.open_session()
        try:
            await session._block_resources(route)
        finally:
            await session.close()

    asyncio.run(run())

    assert route.abort.await_count == (1 if aborted else 0)
    assert route.continue_.await_count == (0 if aborted else 1)
