# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Decision engine: per-URL state machine behind the navigation gate.

    UNCHECKED ──> CHECKING ──> SAFE
                     │
                     └──> BLOCKED ──(Continue Anyway)──> OVERRIDDEN

``evaluate()`` is synchronous and answers immediately with a tagged
``Decision``.  When a URL needs classification it returns DENY_PENDING and a
task that completes with the final state, so the caller can navigate again
once the verdict is known ("deny now, navigate again later").

The verdict cache and in-flight registry are owned by the engine instance
(one per browsing session).  Both are mutated only on the event loop thread;
the only suspension points are the classifier call and the override prompt.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from . import FAIL_OPEN, ClassificationResult, VerdictEntry
from .inflight import InFlightRegistry
from .logging_config import bind_navigation
from .prompt import MaliciousUrlWarning, Notifier, OverrideChoice, OverridePrompt
from .telemetry import emit, events
from .urls import is_bypassed
from .verdict_cache import VerdictCache

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    """Anything that can classify a URL (normally ``ClassifierClient``)."""

    async def classify(self, url: str) -> ClassificationResult: ...


class UrlState(StrEnum):
    UNCHECKED = "unchecked"
    CHECKING = "checking"
    SAFE = "safe"
    BLOCKED = "blocked"
    OVERRIDDEN = "overridden"


# Terminal states that let the navigation load.
NAVIGABLE_STATES = frozenset({UrlState.SAFE, UrlState.OVERRIDDEN})


class DecisionKind(StrEnum):
    ALLOW = "allow"
    DENY = "deny"
    DENY_PENDING = "deny_pending"  # denied now, classification started


@dataclass(frozen=True, slots=True)
class Decision:
    """Synchronous answer for one navigation attempt."""

    kind: DecisionKind
    url: str
    reason: str  # bypass | inactive | cached_safe | overridden | fail_open | blocked | in_flight | classifying
    pending: asyncio.Task[UrlState] | None = None  # set only for DENY_PENDING

    @property
    def allowed(self) -> bool:
        return self.kind is DecisionKind.ALLOW


class DecisionEngine:
    """Classifies, caches, and drives the override prompt for each URL.

    Args:
        classifier: verdict source; failures must come back as fail-open.
        prompt: "Cancel" / "Continue Anyway" confirmation.
        notifier: optional local notification shown with the prompt.
        is_active: gate switch (protective session state); False lets
            everything through without classification.
    """

    def __init__(
        self,
        classifier: Classifier,
        prompt: OverridePrompt,
        *,
        notifier: Notifier | None = None,
        is_active: Callable[[], bool] = lambda: True,
        cache: VerdictCache | None = None,
        registry: InFlightRegistry | None = None,
    ) -> None:
        self._classifier = classifier
        self._prompt = prompt
        self._notifier = notifier
        self._is_active = is_active
        self._cache = cache if cache is not None else VerdictCache()
        self._registry = registry if registry is not None else InFlightRegistry()
        # URLs whose last classification failed open: one navigation is let
        # through without a verdict being stored.
        self._fail_open_passes: set[str] = set()
        self._resolutions: dict[str, asyncio.Task[UrlState]] = {}
        self._prompts: dict[str, asyncio.Task[UrlState]] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def cache(self) -> VerdictCache:
        return self._cache

    @property
    def registry(self) -> InFlightRegistry:
        return self._registry

    @property
    def gate_active(self) -> bool:
        return bool(self._is_active())

    # ── Synchronous decision ─────────────────────────────────────────

    def evaluate(self, url: str) -> Decision:
        """Decide a navigation attempt without waiting.

        Starts at most one classification per URL; must be called from the
        event loop thread.
        """
        if is_bypassed(url):
            return Decision(DecisionKind.ALLOW, url, "bypass")
        if not self.gate_active:
            return Decision(DecisionKind.ALLOW, url, "inactive")

        entry = self._cache.get(url)
        if entry is not None:
            if entry.navigable:
                return Decision(DecisionKind.ALLOW, url, "overridden" if entry.user_allowed else "cached_safe")
            return Decision(DecisionKind.DENY, url, "blocked")

        if url in self._fail_open_passes:
            self._fail_open_passes.discard(url)
            return Decision(DecisionKind.ALLOW, url, "fail_open")

        if not self._registry.begin(url):
            emit(events.NAVIGATION_DUPLICATE, events.navigation(url=url))
            return Decision(DecisionKind.DENY, url, "in_flight")

        try:
            task = asyncio.get_running_loop().create_task(self._resolve_claimed(url))
        except RuntimeError:
            self._registry.end(url)
            raise
        self._resolutions[url] = task
        self._track(task)
        task.add_done_callback(lambda t: _forget(self._resolutions, url, t))
        logger.debug("Classification started: %s", url)
        return Decision(DecisionKind.DENY_PENDING, url, "classifying", pending=task)

    def state_of(self, url: str) -> UrlState:
        entry = self._cache.peek(url)
        if entry is not None:
            if not entry.is_malicious:
                return UrlState.SAFE
            return UrlState.OVERRIDDEN if entry.user_allowed else UrlState.BLOCKED
        if url in self._registry:
            return UrlState.CHECKING
        return UrlState.UNCHECKED

    def discard_fail_open_pass(self, url: str) -> None:
        """Drop an unused fail-open pass (the user navigated elsewhere)."""
        self._fail_open_passes.discard(url)

    # ── Asynchronous resolution ──────────────────────────────────────

    async def request(self, url: str) -> UrlState:
        """Explicit user request (address bar): resolve *url* to a final state.

        Unlike ``evaluate()``, a URL that is blocked without override prompts
        again, because the user asked for it directly.
        """
        if url in self._fail_open_passes and url not in self._cache:
            return UrlState.SAFE  # pass stays for the load that follows
        decision = self.evaluate(url)
        if decision.allowed:
            entry = self._cache.peek(url)
            return UrlState.OVERRIDDEN if entry is not None and entry.user_allowed else UrlState.SAFE
        if decision.pending is not None:
            return await asyncio.shield(decision.pending)
        if decision.reason == "in_flight":
            running = self._resolutions.get(url)
            if running is None:
                return UrlState.CHECKING
            return await asyncio.shield(running)
        return await self._confirm_override(url)

    async def _resolve_claimed(self, url: str) -> UrlState:
        """Classify a URL already marked in flight by ``evaluate()``."""
        with bind_navigation(url):
            with self._registry.claim(url):
                try:
                    result = await self._classifier.classify(url)
                except Exception:
                    logger.error("Classifier raised, failing open: %s", url, exc_info=True)
                    result = FAIL_OPEN
                state = self._record(url, result)
            # in-flight entry released: the cached verdict now answers repeats
            if state is UrlState.BLOCKED:
                return await self._confirm_override(url)
            return state

    def _record(self, url: str, result: ClassificationResult) -> UrlState:
        if result.fail_open:
            self._fail_open_passes.add(url)
            logger.info("Classifier unavailable, allowing without verdict: %s", url)
            emit(events.VERDICT_SAFE, events.verdict_safe(url=url, fail_open=True))
            return UrlState.SAFE

        entry = VerdictEntry.from_result(result)
        self._cache.put(url, entry)
        if not entry.is_malicious:
            emit(events.VERDICT_SAFE, events.verdict_safe(url=url, fail_open=False))
            return UrlState.SAFE

        logger.warning(
            "Malicious URL blocked: url=%s confidence=%s probability=%.3f",
            url,
            result.confidence_label,
            result.probability,
        )
        emit(
            events.VERDICT_BLOCKED,
            events.verdict_blocked(url=url, probability=result.probability, confidence=result.confidence_label),
        )
        return UrlState.BLOCKED

    async def _confirm_override(self, url: str) -> UrlState:
        """Show (or join) the override prompt for *url*."""
        running = self._prompts.get(url)
        if running is None:
            running = asyncio.get_running_loop().create_task(self._run_prompt(url))
            self._prompts[url] = running
            self._track(running)
            running.add_done_callback(lambda t: _forget(self._prompts, url, t))
        return await asyncio.shield(running)

    async def _run_prompt(self, url: str) -> UrlState:
        entry = self._cache.peek(url)
        if entry is None:
            return UrlState.UNCHECKED
        if entry.navigable:
            return UrlState.OVERRIDDEN if entry.user_allowed else UrlState.SAFE

        warning = MaliciousUrlWarning(
            url=url,
            confidence=entry.confidence_label or entry.confidence.value,
            probability=entry.probability,
        )
        self._send_notification(warning)
        try:
            choice = await self._prompt.confirm(warning)
        except Exception:
            logger.error("Override prompt failed, keeping block: %s", url, exc_info=True)
            choice = OverrideChoice.CANCEL

        if choice is OverrideChoice.CONTINUE:
            self._cache.mark_user_allowed(url)
            emit(events.OVERRIDE_ACCEPTED, events.override(url=url))
            return UrlState.OVERRIDDEN

        logger.info("User kept block: %s", url)
        emit(events.OVERRIDE_CANCELLED, events.override(url=url))
        return UrlState.BLOCKED

    def _send_notification(self, warning: MaliciousUrlWarning) -> None:
        """Fire-and-forget local notification; failures are only logged."""
        if self._notifier is None:
            return
        task = asyncio.get_running_loop().create_task(
            self._notifier.notify(warning.title, warning.notification_body())
        )
        self._track(task)
        task.add_done_callback(_log_notification_failure)

    # ── Lifecycle ────────────────────────────────────────────────────

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until no resolution, prompt, or notification is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding work and drop all per-session state."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._cache.clear()
        self._registry.clear()
        self._fail_open_passes.clear()
        logger.debug("Decision engine closed (cancelled %d task(s))", len(tasks))


def _forget(tasks: dict[str, asyncio.Task[UrlState]], url: str, task: asyncio.Task) -> None:
    # a newer task may already own the slot
    if tasks.get(url) is task:
        del tasks[url]


def _log_notification_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Failed to show notification: %r", exc)
