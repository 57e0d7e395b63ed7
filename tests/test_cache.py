from __future__ import annotations

import asyncio

import pytest

from marketlens.insight.cache import ListingCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_get_set_and_expiry():
    clock = FakeClock()
    cache = ListingCache(clock=clock)
    cache.set("k", [1, 2], ttl=30)
    assert cache.get("k") == [1, 2]
    clock.now += 29
    assert cache.get("k") == [1, 2]
    clock.now += 1
    assert cache.get("k") is None
    assert cache.get("missing") is None


def test_entries_keep_their_own_ttl():
    clock = FakeClock()
    cache = ListingCache(clock=clock)
    cache.set("pm:search:btc", ["short"], ttl=30)
    cache.set("kalshi:events", ["long"], ttl=300)
    clock.now += 60
    assert cache.get("pm:search:btc") is None
    assert cache.get("kalshi:events") == ["long"]
    assert len(cache) == 1


def test_size_is_bounded():
    clock = FakeClock()
    cache = ListingCache(maxsize=3, clock=clock)
    for i in range(10):
        cache.set(f"pm:search:q{i}", [i], ttl=30)
        clock.now += 1
    assert len(cache) == 3
    assert cache.get("pm:search:q9") == [9]
    assert cache.get("pm:search:q0") is None


def test_falsy_values_are_cached():
    cache = ListingCache(clock=FakeClock())
    cache.set("kalshi:events", [], ttl=300)
    assert cache.get("kalshi:events", "missing") == []
    cache.clear()
    assert cache.get("kalshi:events", "missing") == "missing"


@pytest.mark.asyncio
async def test_get_or_fill_caches_until_expiry():
    clock = FakeClock()
    cache = ListingCache(clock=clock)
    calls = []

    async def producer():
        calls.append(1)
        return len(calls)

    assert await cache.get_or_fill("pm:search:btc", 30, producer) == 1
    assert await cache.get_or_fill("pm:search:btc", 30, producer) == 1
    clock.now += 31
    assert await cache.get_or_fill("pm:search:btc", 30, producer) == 2
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_get_or_fill_caches_empty_listings():
    cache = ListingCache()
    calls = []

    async def producer():
        calls.append(1)
        return []

    assert await cache.get_or_fill("kalshi:events", 300, producer) == []
    assert await cache.get_or_fill("kalshi:events", 300, producer) == []
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_get_or_fill_single_flight_under_concurrency():
    cache = ListingCache()
    calls = []

    async def producer():
        calls.append(1)
        await asyncio.sleep(0.05)
        return ["listing"]

    results = await asyncio.gather(*[
        cache.get_or_fill("kalshi:events", 300, producer) for _ in range(5)
    ])
    assert results == [["listing"]] * 5
    assert len(calls) == 1
    assert cache.pending_keys == set()


@pytest.mark.asyncio
async def test_fill_locks_are_released_for_distinct_keys():
    cache = ListingCache(maxsize=4)

    async def producer():
        return ["listing"]

    for i in range(20):
        await cache.get_or_fill(f"pm:search:q{i}", 30, producer)
    assert cache.pending_keys == set()
    assert len(cache) == 4


@pytest.mark.asyncio
async def test_get_or_fill_does_not_cache_failures():
    cache = ListingCache()
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise ValueError("bad payload")
        return ["ok"]

    with pytest.raises(ValueError):
        await cache.get_or_fill("k", 30, flaky)
    assert cache.pending_keys == set()
    assert await cache.get_or_fill("k", 30, flaky) == ["ok"]


@pytest.mark.asyncio
async def test_cancelled_fill_releases_its_lock():
    cache = ListingCache()

    async def slow():
        await asyncio.sleep(5)
        return ["late"]

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(cache.get_or_fill("pm:search:slow", 30, slow), timeout=0.05)
    assert cache.pending_keys == set()
    assert cache.get("pm:search:slow") is None
