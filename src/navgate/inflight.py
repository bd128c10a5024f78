# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Registry of URLs currently awaiting a classifier response.

``begin()`` is a check-and-set: there is no await between the membership test
and the insert, so on a single event loop two navigations to the same URL
can never both win.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class InFlightRegistry:
    """Set of URLs with an outstanding classification (at most one each)."""

    def __init__(self) -> None:
        self._urls: set[str] = set()

    def begin(self, url: str) -> bool:
        """Mark *url* in flight.  False if it already was."""
        if url in self._urls:
            logger.debug("Classification already in flight: %s", url)
            return False
        self._urls.add(url)
        return True

    def end(self, url: str) -> None:
        """Release *url*.  Idempotent."""
        self._urls.discard(url)

    @contextmanager
    def claim(self, url: str) -> Iterator[None]:
        """Release a URL already marked by a successful ``begin()`` on exit.

        The release runs on every exit path, including exceptions and task
        cancellation, so a failed classification can be retried later.
        """
        try:
            yield
        finally:
            self.end(url)

    def clear(self) -> None:
        self._urls.clear()

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)
