# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Telemetry writers: FileWriter (daily JSONL), NullWriter, ListWriter."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Writer(Protocol):
    """Writer protocol for telemetry output."""

    def write_sync(self, batch: list[dict]) -> None: ...


class FileWriter:
    """Append envelopes as JSON lines to ``events-YYYY-MM-DD.jsonl``.

    Best-effort: I/O errors are logged at debug and the batch is dropped.
    """

    def __init__(self, export_path: str | Path) -> None:
        self._export_path = Path(export_path)

    def path_for(self, day: str) -> Path:
        return self._export_path / f"events-{day}.jsonl"

    def write_sync(self, batch: list[dict]) -> None:
        if not batch:
            return
        target = self.path_for(datetime.now(UTC).strftime("%Y-%m-%d"))
        try:
            self._export_path.mkdir(parents=True, exist_ok=True)
            with open(target, "a", encoding="utf-8") as f:
                for envelope in batch:
                    f.write(json.dumps(envelope, ensure_ascii=False, separators=(",", ":")))
                    f.write("\n")
        except OSError:
            logger.debug("Telemetry write failed: %s", target, exc_info=True)


class NullWriter:
    """No-op writer for disabled telemetry."""

    def write_sync(self, batch: list[dict]) -> None:
        pass


class ListWriter:
    """In-memory writer for testing. Captures all written events."""

    def __init__(self) -> None:
        self.events: list[dict] = []

    def write_sync(self, batch: list[dict]) -> None:
        self.events.extend(batch)

    def event_types(self) -> list[str]:
        """Event names in write order (unwraps the OTLP envelope)."""
        return [e["resourceLogs"][0]["scopeLogs"][0]["logRecords"][0]["body"]["stringValue"] for e in self.events]
