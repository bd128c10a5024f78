# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""navgate: malicious-URL navigation gate for embedded browser surfaces.

Every navigation attempt is classified by an external URL classifier before it
is allowed to load:
- verdicts are cached per URL for the browsing session
- malicious URLs stay blocked until the user explicitly continues anyway
- an unreachable classifier never blocks navigation (fail-open)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Confidence(StrEnum):
    """Classifier confidence bucket."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"

    @classmethod
    def from_label(cls, label: str | None) -> Confidence:
        """Map a classifier label onto a bucket; unrecognised labels are UNKNOWN."""
        if not label:
            return cls.UNKNOWN
        try:
            return cls(label.strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """What the classifier client hands back for a single URL."""

    is_malicious: bool
    probability: float = 0.0
    confidence_label: str = Confidence.UNKNOWN.value  # verbatim from the service
    fail_open: bool = False  # True = service unavailable, never cached

    @property
    def confidence(self) -> Confidence:
        return Confidence.from_label(self.confidence_label)


# Returned whenever the classifier cannot be reached or answers garbage.
FAIL_OPEN = ClassificationResult(is_malicious=False, fail_open=True)


@dataclass(slots=True)
class VerdictEntry:
    """Cached verdict for one URL plus the user's override decision."""

    is_malicious: bool
    probability: float
    confidence: Confidence = Confidence.UNKNOWN
    confidence_label: str = ""
    user_allowed: bool = False  # False -> True only via "Continue Anyway"

    @property
    def navigable(self) -> bool:
        """Safe, or malicious but explicitly overridden."""
        return not self.is_malicious or self.user_allowed

    @classmethod
    def from_result(cls, result: ClassificationResult) -> VerdictEntry:
        return cls(
            is_malicious=result.is_malicious,
            probability=result.probability,
            confidence=result.confidence,
            confidence_label=result.confidence_label,
        )
