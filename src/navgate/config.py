# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Gate configuration: frozen dataclass with env-var loading.

Leaf module, only depends on errors.py.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlparse

from .errors import ConfigError

DEFAULT_CLASSIFIER_URL = "http://localhost:3000"
DEFAULT_CLASSIFIER_TIMEOUT = 10.0
DEFAULT_SEARCH_URL = "https://www.google.com/search?q={query}"
DEFAULT_HOME_URL = "https://www.google.com"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True, slots=True)
class GateConfig:
    """Immutable configuration for one gate session."""

    classifier_url: str = DEFAULT_CLASSIFIER_URL
    classifier_timeout: float = DEFAULT_CLASSIFIER_TIMEOUT
    search_url: str = DEFAULT_SEARCH_URL  # must contain "{query}"
    home_url: str = DEFAULT_HOME_URL
    protective_session: bool = True  # gate active at session start

    def __post_init__(self) -> None:
        parsed = urlparse(self.classifier_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"classifier_url must be an absolute http(s) URL, got {self.classifier_url!r}")
        if self.classifier_timeout <= 0:
            raise ConfigError(f"classifier_timeout must be > 0, got {self.classifier_timeout}")
        if "{query}" not in self.search_url:
            raise ConfigError(f"search_url must contain '{{query}}', got {self.search_url!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GateConfig:
        """Build a config from ``NAVGATE_*`` environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            classifier_url=env.get("NAVGATE_CLASSIFIER_URL", DEFAULT_CLASSIFIER_URL).rstrip("/"),
            classifier_timeout=_float(env, "NAVGATE_CLASSIFIER_TIMEOUT", DEFAULT_CLASSIFIER_TIMEOUT),
            search_url=env.get("NAVGATE_SEARCH_URL", DEFAULT_SEARCH_URL),
            home_url=env.get("NAVGATE_HOME_URL", DEFAULT_HOME_URL),
            protective_session=_bool(env, "NAVGATE_PROTECTIVE_SESSION", True),
        )


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")
