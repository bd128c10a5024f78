# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-URL verdict cache for one browsing session.

Pure Python module, no browser or network dependencies.

Entries are keyed by the exact URL handed to the classifier.  There is no
eviction and no TTL: a verdict stays valid until the session is torn down.
Fail-open results are never stored here (the engine filters them).

NOTE: mutated only from the event loop thread.  This class is NOT thread-safe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import VerdictEntry

logger = logging.getLogger(__name__)


@dataclass
class VerdictCacheStats:
    """Counters for cache behaviour, used for logging and CLI output."""

    hits: int = 0
    misses: int = 0
    stores: int = 0
    overrides: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class VerdictCache:
    """URL -> VerdictEntry map with the user-override flag."""

    def __init__(self) -> None:
        self._entries: dict[str, VerdictEntry] = {}
        self._stats = VerdictCacheStats()

    def get(self, url: str) -> VerdictEntry | None:
        entry = self._entries.get(url)
        if entry is None:
            self._stats.misses += 1
        else:
            self._stats.hits += 1
        return entry

    def peek(self, url: str) -> VerdictEntry | None:
        """Like ``get()`` without touching the hit/miss counters."""
        return self._entries.get(url)

    def put(self, url: str, entry: VerdictEntry) -> None:
        """Store *entry* for *url*, replacing any previous verdict."""
        self._entries[url] = entry
        self._stats.stores += 1
        logger.debug(
            "Verdict stored: url=%s malicious=%s confidence=%s size=%d",
            url,
            entry.is_malicious,
            entry.confidence.value,
            len(self._entries),
        )

    def mark_user_allowed(self, url: str) -> None:
        """Record "Continue Anyway" for *url*.  No-op without an entry."""
        entry = self._entries.get(url)
        if entry is None:
            logger.debug("mark_user_allowed without verdict (ignored): %s", url)
            return
        if not entry.user_allowed:
            entry.user_allowed = True
            self._stats.overrides += 1
            logger.info("User override recorded: %s", url)

    def is_navigable(self, url: str) -> bool:
        """True when a cached verdict lets *url* load without classification."""
        entry = self._entries.get(url)
        return entry is not None and entry.navigable

    def is_blocked(self, url: str) -> bool:
        """True when *url* is cached malicious and not overridden."""
        entry = self._entries.get(url)
        return entry is not None and not entry.navigable

    def clear(self) -> None:
        """Drop every verdict (session teardown)."""
        self._entries.clear()
        logger.debug("Verdict cache cleared")

    @property
    def stats(self) -> VerdictCacheStats:
        return self._stats

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)
