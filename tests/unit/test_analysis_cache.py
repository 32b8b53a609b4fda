"""Unit tests for the analysis cache

Tests cover:
- Round trip with access counting and metadata enrichment
- Lazy expiry (expired rows are deleted on lookup)
- Write failures are swallowed and counted
- Per-user eviction of least recently accessed entries
- Stats and clearing
"""

from __future__ import annotations

import sqlite3

import pytest

from draftwise.analysis.cache import AnalysisCache
from draftwise.observability.telemetry import get_counter

ANALYSIS = [{"type": "spelling", "original_text": "wrold", "suggested_text": "world"}]


@pytest.fixture
def cache(clock):
    return AnalysisCache(now_fn=clock)


def test_round_trip_returns_analysis_and_counts_access(cache, clock):
    cache.set("abc", "user-1", ANALYSIS, {"token_count": 12})
    clock.advance(minutes=5)

    hit = cache.get("abc", "user-1")

    assert hit is not None
    assert hit.analysis == ANALYSIS
    assert hit.metadata["token_count"] == 12
    assert hit.metadata["cache_hit"] is True
    assert hit.metadata["access_count"] == 1
    assert hit.metadata["cache_age"] == pytest.approx(300)

    assert cache.get("abc", "user-1").metadata["access_count"] == 2
    assert get_counter("cache.hit") == 2


def test_entries_are_scoped_by_user(cache):
    cache.set("abc", "user-1", ANALYSIS)

    assert cache.get("abc", "user-2") is None
    assert get_counter("cache.miss") == 1


def test_expired_entry_is_deleted_on_lookup(cache, clock):
    cache.set("abc", "user-1", ANALYSIS)
    clock.advance(hours=25)

    assert cache.get("abc", "user-1") is None
    assert get_counter("cache.expired") == 1
    assert cache.stats("user-1")["total_entries"] == 0


def test_entry_valid_just_before_ttl(cache, clock):
    cache.set("abc", "user-1", ANALYSIS)
    clock.advance(hours=23, minutes=59)

    assert cache.get("abc", "user-1") is not None


def test_write_failure_is_swallowed(cache, monkeypatch):
    def broken_write(*args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(cache, "_write", broken_write)

    cache.set("abc", "user-1", ANALYSIS)  # must not raise

    assert get_counter("cache.write_failed") == 1
    assert cache.get("abc", "user-1") is None


def test_rewrite_replaces_entry_and_resets_access_count(cache):
    cache.set("abc", "user-1", ANALYSIS)
    cache.get("abc", "user-1")
    cache.set("abc", "user-1", [])

    hit = cache.get("abc", "user-1")
    assert hit.analysis == []
    assert hit.metadata["access_count"] == 1


def test_eviction_keeps_most_recently_used(clock):
    cache = AnalysisCache(max_entries_per_user=2, now_fn=clock)

    for key in ("h1", "h2", "h3"):
        cache.set(key, "user-1", ANALYSIS)
        clock.advance(seconds=1)

    assert cache.stats("user-1")["total_entries"] == 1
    assert cache.get("h3", "user-1") is not None
    assert get_counter("cache.evicted") == 2


def test_clear_user_and_clear_expired(cache, clock):
    cache.set("a", "user-1", ANALYSIS)
    cache.set("b", "user-2", ANALYSIS)

    assert cache.clear_user("user-1") == 1
    clock.advance(hours=30)
    assert cache.clear_expired() == 1
    assert cache.stats("user-2")["total_entries"] == 0


def test_stats_reports_access_counts(cache):
    cache.set("a", "user-1", ANALYSIS)
    cache.set("b", "user-1", ANALYSIS)
    cache.get("a", "user-1")
    cache.get("a", "user-1")

    stats = cache.stats("user-1")
    assert stats["total_entries"] == 2
    assert stats["total_access_count"] == 2
    assert stats["average_access_count"] == 1.0
