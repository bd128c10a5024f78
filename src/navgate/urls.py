# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""URL helpers: address-bar normalization and interception bypass.

Pure Python module, no browser dependencies.

Keys are deliberately NOT canonicalized beyond the protocol prefix: the
classifier must see exactly the URL that will be loaded, so fragments and
query strings stay part of the key.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import quote_plus, urlparse

from .config import DEFAULT_SEARCH_URL

logger = logging.getLogger(__name__)

# Local/script schemes never sent to the classifier.
BYPASS_SCHEMES = ("data:", "about:", "javascript:", "file:")

_HTTP_PREFIX = re.compile(r"^https?://", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s")


def normalize_url(raw: str, search_url: str = DEFAULT_SEARCH_URL) -> str:
    """Turn address-bar input into a loadable URL.

    - ``http(s)://`` input is kept as typed (case preserved)
    - input that looks like a host (contains a dot) gets ``https://``
    - anything else becomes a search query against *search_url*

    Never raises; input that cannot be handled is returned unchanged.
    """
    if not raw:
        return ""
    try:
        candidate = _WHITESPACE.sub("", raw.strip())
        if not candidate:
            return ""
        if _HTTP_PREFIX.match(candidate) or is_bypassed(candidate):
            return candidate
        if "." in candidate:
            return f"https://{candidate}"
        return search_url.format(query=quote_plus(raw.strip()))
    except Exception:
        logger.debug("URL normalization failed, passing through: %r", raw, exc_info=True)
        return raw


def is_bypassed(url: str) -> bool:
    """True for empty URLs and local/script schemes (case-insensitive)."""
    if not url:
        return True
    lowered = url.lstrip().lower()
    return lowered.startswith(BYPASS_SCHEMES)


def extract_host(url: str) -> str | None:
    """Hostname of *url*, or None when it has none / cannot be parsed."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None
