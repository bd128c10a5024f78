# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for navgate.telemetry.events: names and payload builders."""

from __future__ import annotations

import pytest

from navgate.telemetry import events

ALL_EVENTS = [
    events.CLASSIFIER_REQUEST,
    events.CLASSIFIER_FAIL_OPEN,
    events.VERDICT_SAFE,
    events.VERDICT_BLOCKED,
    events.OVERRIDE_ACCEPTED,
    events.OVERRIDE_CANCELLED,
    events.NAVIGATION_DUPLICATE,
    events.NAVIGATION_REISSUED,
    events.NAVIGATION_STALE,
]


@pytest.mark.parametrize("name", ALL_EVENTS)
def test_event_names_namespaced(name):
    assert name.startswith("navgate.")
    assert name.count(".") == 2


def test_event_names_unique():
    assert len(set(ALL_EVENTS)) == len(ALL_EVENTS)


def test_builders():
    assert events.classifier_request(url="u") == {"url": "u"}
    assert events.classifier_fail_open(url="u", error_type="ClassifierError") == {
        "url": "u",
        "error_type": "ClassifierError",
        "status_code": 0,
    }
    assert events.verdict_safe(url="u", fail_open=True) == {"url": "u", "fail_open": True}
    assert events.verdict_blocked(url="u", probability=0.9, confidence="high") == {
        "url": "u",
        "probability": 0.9,
        "confidence": "high",
    }
    assert events.override(url="u") == {"url": "u"}
    assert events.navigation(url="u") == {"url": "u"}
