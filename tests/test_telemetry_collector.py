# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for navgate.telemetry.collector: TelemetryCollector, OTLP envelope, module API."""

from __future__ import annotations

import pytest

from navgate import telemetry
from navgate.telemetry.collector import TelemetryCollector, TelemetryConfig, TelemetryStats, wrap_otlp
from navgate.telemetry.writer import ListWriter

# ── OTLP Envelope ────────────────────────────────────────────────


def _record(envelope: dict) -> dict:
    return envelope["resourceLogs"][0]["scopeLogs"][0]["logRecords"][0]


class TestOtlpEnvelope:
    def test_basic_structure(self):
        envelope = wrap_otlp("navgate.verdict.blocked", {"url": "https://evil.test"})
        scope_logs = envelope["resourceLogs"][0]["scopeLogs"]
        assert len(scope_logs) == 1
        assert scope_logs[0]["scope"]["name"] == "navgate.telemetry"
        assert len(scope_logs[0]["logRecords"]) == 1

    def test_log_record_fields(self):
        record = _record(wrap_otlp("navgate.verdict.safe", {}, timestamp_ns=1_700_000_000_000_000_000))
        assert record["body"]["stringValue"] == "navgate.verdict.safe"
        assert record["severityNumber"] == 9
        assert record["severityText"] == "INFO"
        assert record["timeUnixNano"] == "1700000000000000000"

    def test_resource_attributes(self):
        envelope = wrap_otlp("test", {})
        keys = {a["key"] for a in envelope["resourceLogs"][0]["resource"]["attributes"]}
        assert keys == {"service.name", "service.version", "os.type"}

    def test_attributes_conversion(self):
        record = _record(
            wrap_otlp("test", {"url": "https://a.test", "status_code": 503, "probability": 0.97, "fail_open": True})
        )
        attrs = {a["key"]: a["value"] for a in record["attributes"]}
        assert attrs["url"] == {"stringValue": "https://a.test"}
        assert attrs["status_code"] == {"intValue": "503"}
        assert attrs["probability"] == {"doubleValue": 0.97}
        assert attrs["fail_open"] == {"boolValue": True}


# ── Collector ────────────────────────────────────────────────────


class TestCollector:
    def test_disabled_drops_everything(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=False), writer=writer)
        collector.emit("navgate.verdict.safe", {"url": "https://a.test"})
        collector.flush_sync()
        assert writer.events == []
        assert collector.stats.emitted == 0

    def test_emit_and_flush(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=True), writer=writer)
        collector.emit("navgate.verdict.safe", {"url": "https://a.test/", "fail_open": False})
        collector.emit("navgate.verdict.blocked", {"url": "https://b.test/"})
        assert writer.events == []

        collector.flush_sync()
        assert writer.event_types() == ["navgate.verdict.safe", "navgate.verdict.blocked"]
        assert collector.stats.exported == 2

    def test_payload_sanitized(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=True, hash_url_paths=False), writer=writer)
        collector.emit("test", {"url": "https://a.test/p?session=1#x", "user_input": "secret words"})
        collector.flush_sync()
        attrs = {a["key"]: a["value"] for a in _record(writer.events[0])["attributes"]}
        assert attrs == {"url": {"stringValue": "https://a.test/p"}}

    def test_queue_limit(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=True, max_queue_size=2), writer=writer)
        for _ in range(5):
            collector.emit("test", {})
        assert collector.stats.emitted == 2
        assert collector.stats.dropped == 3

    def test_shutdown_flushes_and_stops(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=True), writer=writer)
        collector.emit("test", {})
        collector.shutdown()
        collector.emit("after", {})
        collector.flush_sync()
        assert writer.event_types() == ["test"]

    def test_writer_error_suppressed(self):
        class BrokenWriter:
            def write_sync(self, batch):
                raise OSError("disk full")

        collector = TelemetryCollector(TelemetryConfig(enabled=True), writer=BrokenWriter())
        collector.emit("test", {})
        collector.flush_sync()
        assert collector.stats.exported == 0

    @pytest.mark.asyncio
    async def test_background_flush_started_in_loop(self):
        collector = TelemetryCollector(TelemetryConfig(enabled=True, flush_interval_s=3600), writer=ListWriter())
        collector.emit("test", {})
        assert collector._flusher is not None
        collector.shutdown()
        assert collector._flusher is None


def test_stats_count_per_event():
    collector = TelemetryCollector(TelemetryConfig(enabled=True), writer=ListWriter())
    collector.emit("navgate.verdict.safe", {})
    collector.emit("navgate.verdict.safe", {})
    collector.emit("navgate.verdict.blocked", {})
    assert collector.stats.snapshot() == {
        "emitted": 3,
        "dropped": 0,
        "exported": 0,
        "by_event": {"navgate.verdict.safe": 2, "navgate.verdict.blocked": 1},
    }


def test_empty_stats():
    assert TelemetryStats().snapshot()["by_event"] == {}


# ── Module API ───────────────────────────────────────────────────


class TestModuleApi:
    def test_emit_without_configure_is_noop(self):
        telemetry.emit("test", {"url": "https://a.test"})

    def test_configure_idempotent(self):
        first = telemetry.configure(TelemetryConfig(enabled=True), writer=ListWriter())
        second = telemetry.configure(TelemetryConfig(enabled=False))
        assert first is second

    def test_emit_routes_to_collector(self):
        writer = ListWriter()
        telemetry.configure(TelemetryConfig(enabled=True), writer=writer)
        telemetry.emit("navgate.override.accepted", {"url": "https://evil.test/"})
        telemetry.shutdown()
        assert writer.event_types() == ["navgate.override.accepted"]

    def test_emit_never_raises(self):
        class Exploding(TelemetryCollector):
            def emit(self, event_type, payload):
                raise RuntimeError("boom")

        telemetry._collector = Exploding(TelemetryConfig(enabled=True), writer=ListWriter())
        telemetry.emit("test", {})
