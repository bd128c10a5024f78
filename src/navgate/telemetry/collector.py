# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Telemetry collector: config, OTLP LogsData envelope, queued flush.

Gate events are queued on the event loop thread and written in batches,
either by a lazily started background task or by ``shutdown()``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import platform
import queue
import time
from collections import Counter
from dataclasses import dataclass, field

from .privacy import sanitize_payload

logger = logging.getLogger(__name__)

try:
    from importlib.metadata import version as _pkg_version

    _NAVGATE_VERSION = _pkg_version("navgate")
except Exception:
    _NAVGATE_VERSION = "unknown"

SCOPE_NAME = "navgate.telemetry"
_SEVERITY_INFO = 9


def _default_export_path() -> str:
    return os.path.join(os.path.expanduser("~"), ".navgate", "telemetry")


@dataclass(frozen=True)
class TelemetryConfig:
    """Immutable telemetry configuration."""

    enabled: bool = False
    export_path: str = field(default_factory=_default_export_path)
    flush_interval_s: float = 30.0
    max_queue_size: int = 10_000  # events beyond this are dropped, not blocked on
    hash_url_paths: bool = True  # browsing history: keep host, hash the path


@dataclass
class TelemetryStats:
    """What happened to emitted events (diagnostics, not accounting)."""

    emitted: int = 0
    dropped: int = 0
    exported: int = 0
    by_event: Counter[str] = field(default_factory=Counter)

    def snapshot(self) -> dict:
        return {
            "emitted": self.emitted,
            "dropped": self.dropped,
            "exported": self.exported,
            "by_event": dict(self.by_event),
        }


def _otlp_value(value: object) -> dict:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"boolValue": value}
    if isinstance(value, int):
        return {"intValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, (dict, list, tuple)):
        return {"stringValue": json.dumps(value, ensure_ascii=False)}
    return {"stringValue": str(value)}


def wrap_otlp(event_type: str, payload: dict, *, timestamp_ns: int | None = None) -> dict:
    """Wrap one gate event into a single-record OTLP LogsData envelope."""
    stamp = time.time_ns() if timestamp_ns is None else timestamp_ns
    record = {
        "timeUnixNano": str(stamp),
        "severityNumber": _SEVERITY_INFO,
        "severityText": "INFO",
        "body": {"stringValue": event_type},
        "attributes": [{"key": key, "value": _otlp_value(value)} for key, value in payload.items()],
    }
    resource_attributes = [
        {"key": "service.name", "value": {"stringValue": "navgate"}},
        {"key": "service.version", "value": {"stringValue": _NAVGATE_VERSION}},
        {"key": "os.type", "value": {"stringValue": platform.system().lower()}},
    ]
    scope_logs = {"scope": {"name": SCOPE_NAME, "version": "1"}, "logRecords": [record]}
    return {"resourceLogs": [{"resource": {"attributes": resource_attributes}, "scopeLogs": [scope_logs]}]}


class TelemetryCollector:
    """Fire-and-forget collector with lazy background flush.

    Every failure is swallowed here; a gate decision never waits on or
    fails because of telemetry.
    """

    def __init__(self, config: TelemetryConfig, writer: object | None = None) -> None:
        self.config = config
        self.stats = TelemetryStats()
        self._pending: queue.SimpleQueue[dict] = queue.SimpleQueue()
        self._flusher: asyncio.Task | None = None
        self._closed = False

        if writer is None:
            from .writer import FileWriter, NullWriter

            writer = FileWriter(config.export_path) if config.enabled else NullWriter()
        self._writer = writer

    @property
    def accepting(self) -> bool:
        return self.config.enabled and not self._closed

    def emit(self, event_type: str, payload: dict) -> None:
        """Queue one event. Never raises."""
        try:
            if not self.accepting:
                return
            if self._pending.qsize() >= self.config.max_queue_size:
                self.stats.dropped += 1
                return
            envelope = wrap_otlp(event_type, sanitize_payload(payload, hash_paths=self.config.hash_url_paths))
            self._pending.put(envelope)
            self.stats.emitted += 1
            self.stats.by_event[event_type] += 1
            if self._flusher is None:
                self._schedule_flush()
        except Exception:  # nosec B110
            pass

    def _schedule_flush(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # synchronous caller: shutdown() writes what is queued
        self._flusher = loop.create_task(self._flush_every_interval())

    async def _flush_every_interval(self) -> None:
        try:
            while not self._closed:
                await asyncio.sleep(self.config.flush_interval_s)
                # file I/O off the event loop
                await asyncio.to_thread(self.flush_sync)
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Telemetry flush loop stopped", exc_info=True)

    def _take_pending(self) -> list[dict]:
        batch: list[dict] = []
        while True:
            try:
                batch.append(self._pending.get_nowait())
            except queue.Empty:
                return batch

    def flush_sync(self) -> None:
        """Write everything queued so far as one batch."""
        batch = self._take_pending()
        if not batch:
            return
        try:
            self._writer.write_sync(batch)  # type: ignore[attr-defined]
        except Exception:
            logger.debug("Telemetry batch dropped (%d events)", len(batch), exc_info=True)
            return
        self.stats.exported += len(batch)

    def shutdown(self) -> None:
        """Stop accepting events, cancel the background flush, write the rest."""
        self._closed = True
        flusher, self._flusher = self._flusher, None
        if flusher is not None:
            flusher.cancel()
        self.flush_sync()
