# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Navigation interceptor: the synchronous hook the rendering surface calls.

``should_proceed(url)`` must answer immediately.  A URL without a verdict is
denied for this attempt while classification runs in the background; once it
resolves to SAFE or OVERRIDDEN the interceptor re-issues the navigation, and
the second ``should_proceed`` call is answered from the cache.

A late resolution never drags the user back: navigation is only re-issued
while the classified URL is still the one the user last tried to open.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Protocol, runtime_checkable

from .config import DEFAULT_SEARCH_URL
from .engine import NAVIGABLE_STATES, DecisionEngine, DecisionKind, UrlState
from .telemetry import emit, events
from .urls import is_bypassed, normalize_url

logger = logging.getLogger(__name__)


@runtime_checkable
class RenderingSurface(Protocol):
    """The embedded browser the gate protects."""

    @property
    def current_url(self) -> str: ...

    async def load(self, url: str) -> None: ...

    async def go_back(self) -> None: ...

    async def can_go_back(self) -> bool: ...


class NavigationInterceptor:
    """Translates engine decisions into allow/deny for the renderer."""

    def __init__(
        self,
        engine: DecisionEngine,
        surface: RenderingSurface | None = None,
        *,
        search_url: str = DEFAULT_SEARCH_URL,
    ) -> None:
        self._engine = engine
        self._surface = surface
        self._search_url = search_url
        self._intended_url: str | None = None
        self._last_good_url: str | None = None
        self._tasks: set[asyncio.Task] = set()

    def attach(self, surface: RenderingSurface) -> None:
        """Bind the surface after construction (it may need the interceptor first)."""
        self._surface = surface

    @property
    def intended_url(self) -> str | None:
        """Most recent URL the user tried to open."""
        return self._intended_url

    @property
    def last_good_url(self) -> str | None:
        """Most recent URL allowed to load."""
        return self._last_good_url

    # ── Synchronous hook ─────────────────────────────────────────────

    def should_proceed(self, url: str) -> bool:
        """Allow or deny one navigation attempt.  Never blocks, never raises."""
        if is_bypassed(url) or not self._engine.gate_active:
            # javascript: runs in place and leaves the page where it was
            if url and not url.lower().startswith("javascript:"):
                self._intended_url = url
                self._last_good_url = url
            return True

        self._intended_url = url
        try:
            decision = self._engine.evaluate(url)
        except Exception:
            # nothing was classified and nothing is left in flight
            logger.error("Gate evaluation failed, denying attempt: %s", url, exc_info=True)
            return False

        if decision.kind is DecisionKind.DENY_PENDING and decision.pending is not None:
            decision.pending.add_done_callback(lambda task: self._on_resolved(url, task))
        elif decision.allowed:
            self._last_good_url = url

        logger.debug("Navigation %s: url=%s reason=%s", decision.kind.value, url, decision.reason)
        return decision.allowed

    def _on_resolved(self, url: str, task: asyncio.Task[UrlState]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Gate resolution failed: %s", url, exc_info=exc)
            return

        state = task.result()
        if self._intended_url != url:
            logger.info("Verdict arrived after user moved on, not navigating: %s", url)
            emit(events.NAVIGATION_STALE, events.navigation(url=url))
            self._engine.discard_fail_open_pass(url)
            return

        if state in NAVIGABLE_STATES:
            emit(events.NAVIGATION_REISSUED, events.navigation(url=url))
            self._spawn(self._load(url))
        elif state is UrlState.BLOCKED:
            self._spawn(self._revert())

    # ── Address bar ──────────────────────────────────────────────────

    async def open(self, user_input: str) -> bool:
        """Address-bar entry: normalize, classify (prompting if blocked), load.

        Returns True when the URL was allowed to load.
        """
        url = normalize_url(user_input, self._search_url)
        if not url:
            return False
        self._intended_url = url

        if is_bypassed(url) or not self._engine.gate_active:
            allowed = True
        else:
            allowed = await self._engine.request(url) in NAVIGABLE_STATES

        if not allowed:
            logger.info("Navigation suppressed: %s", url)
            return False
        if self._intended_url == url:
            await self._load(url)
        return True

    # ── Surface actions ──────────────────────────────────────────────

    async def _load(self, url: str) -> None:
        if self._surface is None:
            logger.debug("No surface attached, cannot load: %s", url)
            return
        try:
            await self._surface.load(url)
        except Exception:
            logger.warning("Surface failed to load %s", url, exc_info=True)

    async def _revert(self) -> None:
        """Bring the surface back to the last page that was allowed."""
        surface = self._surface
        if surface is None:
            return
        try:
            if self._last_good_url is not None:
                if surface.current_url != self._last_good_url:
                    await surface.load(self._last_good_url)
            elif await surface.can_go_back():
                await surface.go_back()
        except Exception:
            logger.warning("Surface failed to revert after blocked navigation", exc_info=True)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for re-issued navigations still running (tests, shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
