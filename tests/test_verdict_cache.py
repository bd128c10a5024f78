# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for navgate.verdict_cache."""

from __future__ import annotations

from navgate import ClassificationResult, Confidence, VerdictEntry
from navgate.verdict_cache import VerdictCache, VerdictCacheStats

URL = "https://example.com/"


def _entry(malicious: bool, probability: float = 0.5, label: str = "high") -> VerdictEntry:
    return VerdictEntry.from_result(
        ClassificationResult(is_malicious=malicious, probability=probability, confidence_label=label)
    )


class TestVerdictEntry:
    def test_from_result_keeps_label_verbatim(self):
        entry = _entry(True, 0.9, "Very High")
        assert entry.confidence_label == "Very High"
        assert entry.confidence is Confidence.UNKNOWN
        assert entry.user_allowed is False

    def test_navigable(self):
        assert _entry(False).navigable
        blocked = _entry(True)
        assert not blocked.navigable
        blocked.user_allowed = True
        assert blocked.navigable


class TestVerdictCache:
    def test_miss_then_hit(self):
        cache = VerdictCache()
        assert cache.get(URL) is None
        cache.put(URL, _entry(False))
        assert cache.get(URL).is_malicious is False
        assert cache.stats.hits == 1
        assert cache.stats.misses == 1
        assert cache.stats.stores == 1

    def test_peek_does_not_count(self):
        cache = VerdictCache()
        cache.put(URL, _entry(False))
        cache.peek(URL)
        cache.peek("https://other.test/")
        assert cache.stats.hits == 0
        assert cache.stats.misses == 0

    def test_keys_are_exact(self):
        cache = VerdictCache()
        cache.put(URL, _entry(True))
        assert "https://example.com" not in cache
        assert "https://example.com/#top" not in cache
        assert URL in cache

    def test_blocked_and_navigable(self):
        cache = VerdictCache()
        cache.put(URL, _entry(True))
        assert cache.is_blocked(URL)
        assert not cache.is_navigable(URL)
        assert not cache.is_blocked("https://unknown.test/")
        assert not cache.is_navigable("https://unknown.test/")

    def test_mark_user_allowed(self):
        cache = VerdictCache()
        cache.put(URL, _entry(True))
        cache.mark_user_allowed(URL)
        cache.mark_user_allowed(URL)
        assert cache.is_navigable(URL)
        assert cache.peek(URL).user_allowed is True
        assert cache.stats.overrides == 1

    def test_mark_user_allowed_without_entry_is_noop(self):
        cache = VerdictCache()
        cache.mark_user_allowed(URL)
        assert URL not in cache
        assert len(cache) == 0

    def test_clear(self):
        cache = VerdictCache()
        cache.put(URL, _entry(False))
        cache.put("https://b.test/", _entry(True))
        cache.clear()
        assert len(cache) == 0


def test_hit_rate():
    assert VerdictCacheStats().hit_rate == 0.0
    assert VerdictCacheStats(hits=3, misses=1).hit_rate == 0.75
