# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Telemetry event types, TypedDict payload definitions, and builder functions."""

from __future__ import annotations

from typing import TypedDict

# ── Event type constants (OTel naming) ───────────────────────────

# Classifier client
CLASSIFIER_REQUEST = "navgate.classifier.request"
CLASSIFIER_FAIL_OPEN = "navgate.classifier.fail_open"

# Decision engine
VERDICT_SAFE = "navgate.verdict.safe"
VERDICT_BLOCKED = "navgate.verdict.blocked"
OVERRIDE_ACCEPTED = "navgate.override.accepted"
OVERRIDE_CANCELLED = "navgate.override.cancelled"

# Navigation interceptor
NAVIGATION_DUPLICATE = "navgate.navigation.duplicate"
NAVIGATION_REISSUED = "navgate.navigation.reissued"
NAVIGATION_STALE = "navgate.navigation.stale"


# ── TypedDict payload definitions ────────────────────────────────


class ClassifierRequestPayload(TypedDict):
    url: str


class ClassifierFailOpenPayload(TypedDict):
    url: str
    error_type: str
    status_code: int


class VerdictSafePayload(TypedDict):
    url: str
    fail_open: bool


class VerdictBlockedPayload(TypedDict):
    url: str
    probability: float
    confidence: str


class OverridePayload(TypedDict):
    url: str


class NavigationPayload(TypedDict):
    url: str


# ── Builders ─────────────────────────────────────────────────────


def classifier_request(*, url: str) -> ClassifierRequestPayload:
    return ClassifierRequestPayload(url=url)


def classifier_fail_open(*, url: str, error_type: str, status_code: int = 0) -> ClassifierFailOpenPayload:
    return ClassifierFailOpenPayload(url=url, error_type=error_type, status_code=status_code)


def verdict_safe(*, url: str, fail_open: bool) -> VerdictSafePayload:
    return VerdictSafePayload(url=url, fail_open=fail_open)


def verdict_blocked(*, url: str, probability: float, confidence: str) -> VerdictBlockedPayload:
    return VerdictBlockedPayload(url=url, probability=probability, confidence=confidence)


def override(*, url: str) -> OverridePayload:
    return OverridePayload(url=url)


def navigation(*, url: str) -> NavigationPayload:
    return NavigationPayload(url=url)
