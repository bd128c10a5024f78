# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""navgate exception hierarchy.

All navgate-specific errors inherit from NavGateError.  Classifier errors are
raised inside the classifier client only and converted to a fail-open result
at its boundary; they never reach the decision engine or the renderer.
"""

from __future__ import annotations


class NavGateError(Exception):
    """Base exception for all navgate errors."""


class ConfigError(NavGateError):
    """Invalid gate configuration (bad env var, bad URL template, etc.)."""


class BrowserError(NavGateError):
    """Rendering surface launch or navigation failure."""


class ClassifierError(NavGateError):
    """Classifier service unreachable, timed out, or answered non-2xx."""

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ClassifierResponseError(ClassifierError):
    """Classifier answered 2xx but the body is not a valid verdict."""
