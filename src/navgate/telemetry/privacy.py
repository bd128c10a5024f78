# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Privacy utilities for telemetry payloads.

Navigation URLs are user browsing history: only scheme and host (and an
optional hashed path) may leave the process.
"""

from __future__ import annotations

import hashlib
from urllib.parse import urlparse, urlunparse

# Payload keys that are never exported
_BLOCKED_FIELDS = frozenset({"query", "fragment", "body", "title", "user_input"})

_URL_FIELDS = ("url",)


def sanitize_url(url: str, *, hash_paths: bool = False) -> str:
    """Remove query/fragment from URL, optionally hash path segments.

    Domain is preserved for analytics.  Unparseable input becomes "".
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return ""

    path = parsed.path
    if hash_paths and path:
        path = "/".join(hashlib.sha256(seg.encode("utf-8")).hexdigest()[:8] if seg else seg for seg in path.split("/"))

    return urlunparse((parsed.scheme, parsed.netloc, path, "", "", ""))


def sanitize_payload(payload: dict, *, hash_paths: bool = False) -> dict:
    """Return a copy of *payload* without blocked keys and with URLs sanitized."""
    cleaned: dict = {}
    for key, value in payload.items():
        if key in _BLOCKED_FIELDS:
            continue
        if key in _URL_FIELDS and isinstance(value, str):
            cleaned[key] = sanitize_url(value, hash_paths=hash_paths)
        else:
            cleaned[key] = value
    return cleaned
