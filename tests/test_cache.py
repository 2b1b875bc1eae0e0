"""
Tests for ProfileCache.

Tests cover:
- TTL measured from refresh completion
- Title filtering and backfill of claimants missing from enumeration
- Source failures falling back to empty data
- Coalescing of concurrent refreshes
- Not-found lookups
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from factories import make_bounty, make_reputation
from repboard.aggregation.cache import ProfileCache
from repboard.core.exceptions import AgentNotFoundError
from repboard.core.types import OnChainReputation


@pytest.fixture
def reader():
    reader = MagicMock()
    reader.enumerate_agents = AsyncMock(return_value={})
    reader.fetch_reputation = AsyncMock(side_effect=lambda address: OnChainReputation.empty(address))
    return reader


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.fetch_bounties = AsyncMock(return_value=[make_bounty()])
    return gateway


@pytest.fixture
def cache(reader, gateway, clock):
    return ProfileCache(reader=reader, gateway=gateway, ttl=60.0, clock=clock)


# ─────────────────────────────────────────────────────────────────
# TTL Behavior
# ─────────────────────────────────────────────────────────────────

class TestProfileCacheTTL:
    """Memoization window."""

    @pytest.mark.asyncio
    async def test_first_call_refreshes(self, cache, gateway):
        assert cache.age is None

        profiles = await cache.get_profiles()

        assert [p.address for p in profiles] == ["0xABC"]
        gateway.fetch_bounties.assert_awaited_once()
        assert cache.is_fresh

    @pytest.mark.asyncio
    async def test_hit_within_ttl(self, cache, gateway, clock):
        await cache.get_profiles()
        clock.advance(59)
        await cache.get_profiles()

        assert gateway.fetch_bounties.await_count == 1

    @pytest.mark.asyncio
    async def test_expired_refreshes(self, cache, gateway, clock):
        await cache.get_profiles()
        clock.advance(60)
        await cache.get_profiles()

        assert gateway.fetch_bounties.await_count == 2

    @pytest.mark.asyncio
    async def test_ttl_from_completion(self, cache, gateway, clock):
        """A slow refresh starts its TTL when it finishes, not when it began."""
        async def slow_fetch():
            clock.advance(30)
            return [make_bounty()]

        gateway.fetch_bounties.side_effect = slow_fetch

        await cache.get_profiles()
        assert cache.age == 0

        clock.advance(45)
        await cache.get_profiles()
        assert gateway.fetch_bounties.await_count == 1

    @pytest.mark.asyncio
    async def test_invalidate(self, cache, gateway):
        await cache.get_profiles()
        cache.invalidate()
        await cache.get_profiles()

        assert gateway.fetch_bounties.await_count == 2

    @pytest.mark.asyncio
    async def test_refresh_ignores_freshness(self, cache, gateway):
        await cache.get_profiles()
        await cache.refresh()

        assert gateway.fetch_bounties.await_count == 2

    @pytest.mark.asyncio
    async def test_callers_get_independent_lists(self, cache):
        first = await cache.get_profiles()
        first.clear()

        assert len(await cache.get_profiles()) == 1


# ─────────────────────────────────────────────────────────────────
# Refresh Pipeline
# ─────────────────────────────────────────────────────────────────

class TestProfileCacheRefresh:
    """Fetch, filter, backfill, aggregate."""

    @pytest.mark.asyncio
    async def test_untitled_bounties_dropped(self, cache, gateway):
        gateway.fetch_bounties.return_value = [
            make_bounty(id="1", title=""),
            make_bounty(id="2", title="Real work", claimed_by="0xDEF"),
        ]

        profiles = await cache.get_profiles()

        assert [p.address for p in profiles] == ["0xDEF"]

    @pytest.mark.asyncio
    async def test_backfill_missing_claimants(self, cache, reader, gateway):
        """Claimants absent from enumeration are read individually, once each."""
        gateway.fetch_bounties.return_value = [
            make_bounty(id="1", claimed_by="0xAAA"),
            make_bounty(id="2", claimed_by="0xaaa"),
            make_bounty(id="3", claimed_by="0xBBB"),
        ]
        reader.enumerate_agents.return_value = {"0xbbb": make_reputation("0xBBB", score=3)}
        reader.fetch_reputation.side_effect = lambda address: make_reputation(address, score=9)

        profiles = await cache.get_profiles()

        reader.fetch_reputation.assert_awaited_once_with("0xaaa")
        by_key = {p.key: p for p in profiles}
        assert by_key["0xaaa"].on_chain_reputation == 9
        assert by_key["0xbbb"].on_chain_reputation == 3
        assert profiles[0].key == "0xaaa"

    @pytest.mark.asyncio
    async def test_zero_footprint_not_stored(self, cache, reader, gateway):
        """Backfilled agents without registry data keep zeroed on-chain fields."""
        gateway.fetch_bounties.return_value = [make_bounty(claimed_by="0xNEW")]

        [profile] = await cache.get_profiles()

        reader.fetch_reputation.assert_awaited_once_with("0xnew")
        assert profile.address == "0xNEW"
        assert profile.on_chain_reputation == 0
        assert profile.recent_feedback == []

    @pytest.mark.asyncio
    async def test_feedback_only_footprint_stored(self, cache, reader, gateway):
        gateway.fetch_bounties.return_value = [make_bounty(claimed_by="0xNEW")]
        reader.fetch_reputation.side_effect = lambda address: make_reputation(address, feedback_count=2)

        [profile] = await cache.get_profiles()

        assert len(profile.recent_feedback) == 2

    @pytest.mark.asyncio
    async def test_backfill_failure_does_not_fail_refresh(self, cache, reader, gateway):
        gateway.fetch_bounties.return_value = [
            make_bounty(id="1", claimed_by="0xAAA"),
            make_bounty(id="2", claimed_by="0xBBB"),
        ]

        def fetch(address):
            if address == "0xaaa":
                raise RuntimeError("boom")
            return make_reputation(address, score=4)

        reader.fetch_reputation.side_effect = fetch

        profiles = await cache.get_profiles()

        assert [p.key for p in profiles] == ["0xbbb", "0xaaa"]

    @pytest.mark.asyncio
    async def test_backfill_reads_run_concurrently(self, cache, reader, gateway):
        """Every missing claimant is read before any read completes."""
        claimants = ["0xAAA", "0xBBB", "0xCCC"]
        gateway.fetch_bounties.return_value = [
            make_bounty(id=str(i), claimed_by=c) for i, c in enumerate(claimants)
        ]
        all_started = asyncio.Event()
        started = []

        async def fetch(address):
            started.append(address)
            if len(started) == len(claimants):
                all_started.set()
            await asyncio.wait_for(all_started.wait(), timeout=1)
            return make_reputation(address, score=1)

        reader.fetch_reputation.side_effect = fetch

        profiles = await cache.get_profiles()

        assert sorted(started) == ["0xaaa", "0xbbb", "0xccc"]
        assert all(p.on_chain_reputation == 1 for p in profiles)

    @pytest.mark.asyncio
    async def test_bounty_source_failure(self, cache, reader, gateway):
        """A failing bounty source still yields on-chain-only profiles."""
        gateway.fetch_bounties.side_effect = RuntimeError("unreachable")
        reader.enumerate_agents.return_value = {"0xdef": make_reputation("0xDEF", score=42)}

        [profile] = await cache.get_profiles()

        assert profile.address == "0xDEF"
        assert profile.on_chain_reputation == 42
        assert profile.history == []

    @pytest.mark.asyncio
    async def test_enumeration_failure(self, cache, reader):
        reader.enumerate_agents.side_effect = RuntimeError("rpc down")

        [profile] = await cache.get_profiles()

        assert profile.address == "0xABC"

    @pytest.mark.asyncio
    async def test_sources_fetched_concurrently(self, cache, reader, gateway):
        both_started = asyncio.Event()
        started = []

        async def fetch_bounties():
            started.append("bounties")
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)
            return []

        async def enumerate_agents():
            started.append("agents")
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)
            return {}

        gateway.fetch_bounties.side_effect = fetch_bounties
        reader.enumerate_agents.side_effect = enumerate_agents

        assert await cache.get_profiles() == []
        assert sorted(started) == ["agents", "bounties"]


# ─────────────────────────────────────────────────────────────────
# Concurrency
# ─────────────────────────────────────────────────────────────────

class TestProfileCacheConcurrency:
    """Concurrent callers share one refresh."""

    @pytest.mark.asyncio
    async def test_concurrent_misses_coalesce(self, cache, gateway):
        release = asyncio.Event()

        async def blocked_fetch():
            await release.wait()
            return [make_bounty()]

        gateway.fetch_bounties.side_effect = blocked_fetch

        tasks = [asyncio.create_task(cache.get_profiles()) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks)

        assert gateway.fetch_bounties.await_count == 1
        assert all([p.address for p in r] == ["0xABC"] for r in results)

    @pytest.mark.asyncio
    async def test_readers_see_previous_set_during_refresh(self, cache, gateway, clock):
        await cache.get_profiles()
        clock.advance(61)

        release = asyncio.Event()

        async def blocked_fetch():
            await release.wait()
            return [make_bounty(claimed_by="0xNEW")]

        gateway.fetch_bounties.side_effect = blocked_fetch
        refresh = asyncio.create_task(cache.get_profiles())
        await asyncio.sleep(0)

        assert cache._profiles[0].address == "0xABC"

        release.set()
        assert [p.address for p in await refresh] == ["0xNEW"]


# ─────────────────────────────────────────────────────────────────
# Lookup
# ─────────────────────────────────────────────────────────────────

class TestGetProfile:
    """Single-profile lookup."""

    @pytest.mark.asyncio
    async def test_case_insensitive(self, cache):
        profile = await cache.get_profile("0xabc")
        assert profile.address == "0xABC"

    @pytest.mark.asyncio
    async def test_not_found(self, cache):
        """Absent addresses raise instead of returning a zeroed profile."""
        with pytest.raises(AgentNotFoundError) as exc_info:
            await cache.get_profile("0xdead")
        assert exc_info.value.address == "0xdead"
