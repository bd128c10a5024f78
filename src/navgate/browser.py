# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright rendering surface with the navigation gate installed.

Every main-frame navigation request (typed, clicked, scripted, redirected)
passes through ``NavigationInterceptor.should_proceed`` via a context-level
route; denied requests are aborted with ``blockedbyclient``.  Subresources
are never gated.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from .errors import BrowserError
from .interceptor import NavigationInterceptor

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class BrowserConfig:
    """Browser launch configuration."""

    headless: bool = True
    locale: str = "en-US"
    viewport_width: int = 1280
    viewport_height: int = 800
    user_agent: str = DEFAULT_USER_AGENT
    timeout_ms: int = 30000
    wait_until: str = "load"


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    """Chromium flags: no built-in phishing check, no background traffic."""
    return [
        f"--lang={config.locale}",
        "--disable-extensions",
        "--disable-background-networking",
        "--disable-sync",
        "--no-first-run",
        "--disable-client-side-phishing-detection",
        "--disable-component-update",
        "--noerrdialogs",
    ]


class BrowserSurface:
    """A Chromium page that implements ``RenderingSurface``."""

    def __init__(self, config: BrowserConfig | None = None) -> None:
        self.config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser surface not started. Use async with or call start().")
        return self._page

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("Browser surface not started.")
        return self._context

    async def start(self) -> None:
        """Launch Chromium and open one page."""
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=chromium_launch_args(self.config),
            )
        except PlaywrightError as exc:
            await self.stop()
            if "executable doesn't exist" in str(exc).lower():
                raise BrowserError("Chromium is not installed. Please run: playwright install chromium") from exc
            raise BrowserError(f"Chromium launch failed: {exc}") from exc

        self._context = await self._browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
            locale=self.config.locale,
            user_agent=self.config.user_agent,
            # service workers could fetch documents outside the route
            service_workers="block",
            accept_downloads=False,
        )
        self._page = await self._context.new_page()
        logger.info("Browser surface started (headless=%s)", self.config.headless)

    async def install_gate(self, interceptor: NavigationInterceptor) -> None:
        """Route main-frame navigations through the interceptor."""

        async def _route_handler(route: Route) -> None:
            request = route.request
            if request.is_navigation_request() and request.frame.parent_frame is None:
                if not interceptor.should_proceed(request.url):
                    logger.info("Navigation held by gate: %s", request.url)
                    await route.abort("blockedbyclient")
                    return
            await route.continue_()

        await self.context.route("**/*", _route_handler)
        interceptor.attach(self)
        logger.info("Navigation gate installed on browser context")

    async def stop(self) -> None:
        """Close everything. Safe to call on a crashed or half-started browser."""
        if self._context is not None:
            with suppress(Exception):
                await self._context.close()
            self._context = None
        self._page = None
        if self._browser is not None:
            with suppress(Exception):
                await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            with suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
        logger.info("Browser surface stopped")

    async def __aenter__(self) -> BrowserSurface:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    # ── RenderingSurface ─────────────────────────────────────────────

    @property
    def current_url(self) -> str:
        return self._page.url if self._page is not None else ""

    async def load(self, url: str) -> None:
        """Force-navigate the page (re-enters the gate through the route)."""
        await self.page.goto(url, wait_until=self.config.wait_until, timeout=self.config.timeout_ms)

    async def go_back(self) -> None:
        await self.page.go_back(wait_until=self.config.wait_until, timeout=self.config.timeout_ms)

    async def can_go_back(self) -> bool:
        try:
            return bool(await self.page.evaluate("() => window.history.length > 1"))
        except PlaywrightError:
            return False

    async def wait_closed(self) -> None:
        """Block until the user closes the page (headed mode)."""
        await self.page.wait_for_event("close", timeout=0)


@asynccontextmanager
async def create_surface(config: BrowserConfig | None = None) -> AsyncGenerator[BrowserSurface, None]:
    """Context manager to create and tear down a browser surface."""
    surface = BrowserSurface(config)
    await surface.start()
    try:
        yield surface
    finally:
        await surface.stop()
