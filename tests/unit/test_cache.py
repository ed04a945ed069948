"""
Unit tests for the option cache.
"""
import pytest

from og_prerender.cache import OptionCache
from og_prerender.models import ImageOptions


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return OptionCache(clock=clock)


def options(static=False):
    return ImageOptions(route="/a", path="/a", provider="browser", static=static)


class TestOptionCache:
    def test_round_trip(self, cache):
        value = options()

        cache.put("/a", value, ttl=5)

        assert cache.get("/a") == value

    def test_never_set_is_absent(self, cache):
        assert cache.get("/missing") is None
        assert "/missing" not in cache

    def test_expires_after_ttl(self, cache, clock):
        cache.put("/a", options(), ttl=5)

        clock.advance(4)
        assert cache.get("/a") is not None
        clock.advance(1)
        assert cache.get("/a") is None
        assert len(cache) == 0

    def test_static_entries_outlive_dynamic_ones(self, cache, clock):
        static_entry = cache.remember("/static", options(static=True))
        dynamic_entry = cache.remember("/dynamic", options(static=False))

        assert static_entry.expires_at > dynamic_entry.expires_at
        clock.advance(60)
        assert cache.get("/static") is not None
        assert cache.get("/dynamic") is None

    def test_default_ttls(self, cache):
        assert cache.ttl_for(options(static=True)) == 3600
        assert cache.ttl_for(options(static=False)) == 5

    def test_overwrite_replaces_value(self, cache):
        cache.put("/a", options(), ttl=5)
        replacement = options(static=True)

        cache.put("/a", replacement, ttl=5)

        assert cache.get("/a") is replacement
        assert len(cache) == 1
