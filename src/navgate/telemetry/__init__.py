# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Gate event telemetry, off unless the CLI or an embedder turns it on.

    from navgate.telemetry import emit, events

    emit(events.VERDICT_BLOCKED, events.verdict_blocked(url=url, probability=0.97, confidence="high"))

The classifier, engine and interceptor call ``emit()`` unconditionally; with
no collector configured it returns immediately.
"""

from __future__ import annotations

import atexit
import contextlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .collector import TelemetryCollector, TelemetryConfig

_collector: TelemetryCollector | None = None


def configure(config: TelemetryConfig, writer: object | None = None) -> TelemetryCollector:
    """Install the process-wide collector, or return the one already installed.

    ``writer`` replaces the JSONL file writer (tests pass a ``ListWriter``).
    """
    global _collector
    if _collector is None:
        from .collector import TelemetryCollector

        _collector = TelemetryCollector(config, writer=writer)
        atexit.register(shutdown)
    return _collector


def emit(event_type: str, payload: dict) -> None:
    """Record one gate event; never raises into the navigation path."""
    collector = _collector
    if collector is None:
        return
    with contextlib.suppress(Exception):
        collector.emit(event_type, payload)


def shutdown() -> None:
    """Write what is still queued and stop accepting events."""
    collector = _collector
    if collector is not None:
        with contextlib.suppress(Exception):
            collector.shutdown()


def _reset_for_testing() -> None:
    global _collector
    shutdown()
    _collector = None
