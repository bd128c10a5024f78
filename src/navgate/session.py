# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""GateSession: per-browsing-session gate state.

One session owns one verdict cache, one in-flight registry, one classifier
HTTP client, one decision engine, and the interceptor that fronts them.
Nothing is shared between sessions and nothing outlives ``aclose()``.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import suppress

import httpx

from .classifier import ClassifierClient
from .config import GateConfig
from .engine import Classifier, DecisionEngine
from .interceptor import NavigationInterceptor, RenderingSurface
from .prompt import Notifier, OverridePrompt

logger = logging.getLogger(__name__)


class ProtectiveSession:
    """The "protection on" switch (VPN connected in the mobile app).

    While inactive, every navigation passes without classification.
    """

    def __init__(self, active: bool = False) -> None:
        self._active = active

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> None:
        if not self._active:
            self._active = True
            logger.info("Protective session activated")

    def deactivate(self) -> None:
        if self._active:
            self._active = False
            logger.info("Protective session deactivated, navigation no longer gated")


class GateSession:
    """Builds and tears down the gate for one browsing session.

    Usage::

        async with GateSession(config, prompt=ConsolePrompt()) as gate:
            gate.attach(surface)
            allowed = gate.interceptor.should_proceed(url)
    """

    def __init__(
        self,
        config: GateConfig | None = None,
        *,
        prompt: OverridePrompt,
        notifier: Notifier | None = None,
        protection: ProtectiveSession | None = None,
        classifier: Classifier | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or GateConfig()
        self.protection = protection or ProtectiveSession(active=self.config.protective_session)
        self.session_id = uuid.uuid4().hex[:12]
        self.created_at = time.monotonic()

        self._owned_client: ClassifierClient | None = None
        if classifier is None:
            classifier = self._owned_client = ClassifierClient(
                self.config.classifier_url,
                timeout=self.config.classifier_timeout,
                transport=transport,
            )

        self.engine = DecisionEngine(
            classifier,
            prompt,
            notifier=notifier,
            is_active=lambda: self.protection.active,
        )
        self.interceptor = NavigationInterceptor(self.engine, search_url=self.config.search_url)
        self._closed = False
        logger.info(
            "Gate session created: %s classifier=%s protected=%s",
            self.session_id,
            self.config.classifier_url,
            self.protection.active,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, surface: RenderingSurface) -> None:
        self.interceptor.attach(surface)

    async def aclose(self) -> None:
        """Cancel pending work, drop verdicts, close the HTTP client.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        await self.interceptor.aclose()
        await self.engine.aclose()
        if self._owned_client is not None:
            with suppress(Exception):
                await self._owned_client.aclose()
        logger.info(
            "Gate session closed: %s age=%.0fs",
            self.session_id,
            time.monotonic() - self.created_at,
        )

    async def __aenter__(self) -> GateSession:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
