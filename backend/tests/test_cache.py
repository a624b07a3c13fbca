"""Tests for PlayerCache expiry, sweep and bounds."""
import pytest

from rosterstats.services.cache import CacheEntry, PlayerCache


@pytest.fixture
def ttl_cache(clock):
    return PlayerCache(ttl_seconds=300, max_entries=0, clock=clock)


class TestGetSet:
    def test_get_returns_payload_before_expiry(self, ttl_cache, clock):
        ttl_cache.set("team:NYY:hitting", ("judge",))
        clock.advance(299)
        assert ttl_cache.get("team:NYY:hitting") == ("judge",)

    def test_entry_expires_at_ttl_boundary(self, ttl_cache, clock):
        ttl_cache.set("team:NYY:hitting", ("judge",))
        clock.advance(300)
        assert ttl_cache.get("team:NYY:hitting") is None
        # Lazy eviction removed it
        assert len(ttl_cache) == 0

    def test_missing_key(self, ttl_cache):
        assert ttl_cache.get("league:hitting") is None

    def test_set_replaces_and_resets_expiry(self, ttl_cache, clock):
        ttl_cache.set("k", "old")
        clock.advance(200)
        ttl_cache.set("k", "new")
        clock.advance(200)
        assert ttl_cache.get("k") == "new"

    def test_explicit_ttl(self, ttl_cache, clock):
        ttl_cache.set("k", "v", ttl=10)
        clock.advance(10)
        assert ttl_cache.get("k") is None

    def test_zero_ttl_is_immediately_expired(self, ttl_cache):
        ttl_cache.set("k", "v", ttl=0)
        assert ttl_cache.get("k") is None

    def test_negative_ttl_rejected(self, ttl_cache):
        with pytest.raises(ValueError):
            ttl_cache.set("k", "v", ttl=-1)

    def test_set_returns_entry(self, ttl_cache, clock):
        entry = ttl_cache.set("k", "v")
        assert isinstance(entry, CacheEntry)
        assert entry.created_at == clock.now
        assert entry.expires_at == clock.now + 300

    def test_get_after_expiry_evicts(self, ttl_cache, clock):
        ttl_cache.set("k", "v")
        assert ttl_cache.get("k") == "v"
        clock.advance(301)
        assert ttl_cache.get("k") is None
        assert ttl_cache.lookup("k") is None


class TestLookup:
    def test_lookup_returns_expired_entry_without_evicting(self, ttl_cache, clock):
        ttl_cache.set("k", "v")
        clock.advance(500)
        entry = ttl_cache.lookup("k")
        assert entry is not None
        assert entry.payload == "v"
        assert entry.is_expired(clock.now)
        assert len(ttl_cache) == 1


class TestSweep:
    def test_sweep_removes_only_expired(self, ttl_cache, clock):
        ttl_cache.set("old", 1, ttl=10)
        ttl_cache.set("fresh", 2, ttl=1000)
        clock.advance(11)

        removed = ttl_cache.sweep()

        assert removed == 1
        assert ttl_cache.get("fresh") == 2
        assert ttl_cache.lookup("old") is None

    def test_sweep_empty_cache(self, ttl_cache):
        assert ttl_cache.sweep() == 0

    def test_clear(self, ttl_cache):
        ttl_cache.set("a", 1)
        ttl_cache.set("b", 2)
        ttl_cache.clear()
        assert len(ttl_cache) == 0
        assert ttl_cache.get("a") is None

    def test_live_entries_skips_expired(self, ttl_cache, clock):
        ttl_cache.set("old", 1, ttl=5)
        ttl_cache.set("fresh", 2)
        clock.advance(6)
        assert [e.key for e in ttl_cache.live_entries()] == ["fresh"]


class TestBounds:
    def test_max_entries_evicts_soonest_expiring(self, clock):
        cache = PlayerCache(ttl_seconds=300, max_entries=2, clock=clock)
        cache.set("a", 1)
        clock.advance(1)
        cache.set("b", 2)
        clock.advance(1)
        cache.set("c", 3)

        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_bound_prefers_dropping_expired(self, clock):
        cache = PlayerCache(ttl_seconds=300, max_entries=2, clock=clock)
        cache.set("short", 1, ttl=1)
        cache.set("long", 2)
        clock.advance(2)
        cache.set("new", 3)

        assert cache.get("long") == 2
        assert cache.get("new") == 3


def test_stats_counts_hits_and_misses(ttl_cache):
    ttl_cache.set("k", "v")
    ttl_cache.get("k")
    ttl_cache.get("k")
    ttl_cache.get("missing")

    stats = ttl_cache.stats()

    assert stats["entries"] == 1
    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["ttl_seconds"] == 300


def test_ping(ttl_cache):
    assert ttl_cache.ping() is True


class TestRestore:
    def test_restore_keeps_original_expiry(self, ttl_cache, clock):
        entry = ttl_cache.set("k", "v")
        clock.advance(301)
        assert ttl_cache.get("k") is None

        assert ttl_cache.restore(entry) is True
        assert ttl_cache.lookup("k") is entry
        assert ttl_cache.get("k") is None

    def test_restore_does_not_clobber_newer_entry(self, ttl_cache, clock):
        old = ttl_cache.set("k", "old")
        clock.advance(1)
        ttl_cache.set("k", "new")

        assert ttl_cache.restore(old) is False
        assert ttl_cache.get("k") == "new"
