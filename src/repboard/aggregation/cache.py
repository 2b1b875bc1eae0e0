"""
Profile Cache: TTL-bounded memo of the fetch-and-aggregate pipeline.

One instance per process. A refresh:
1. Fetches the bounty list and enumerates registry agents concurrently
2. Drops bounties without a title
3. Backfills on-chain data for claimants the enumeration did not return
4. Aggregates and publishes the new profile set with its completion time

Concurrent callers that miss the cache wait on the same in-flight refresh.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

from repboard.aggregation.aggregator import ProfileAggregator
from repboard.bounty.gateway import BountyGateway
from repboard.chain.reader import OnChainReader
from repboard.core.exceptions import AgentNotFoundError
from repboard.core.logging import get_logger
from repboard.core.types import AgentProfile, BountyRecord, OnChainReputation

logger = get_logger("aggregation.cache")

# Seconds a published profile set stays fresh
PROFILE_TTL = 60.0


class ProfileCache:
    """
    Serves aggregated AgentProfiles, recomputed at most once per TTL.

    The published set is an immutable tuple replaced by reference on each
    refresh; readers never see a partially built set.
    """

    def __init__(
        self,
        reader: OnChainReader,
        gateway: BountyGateway,
        aggregator: ProfileAggregator | None = None,
        ttl: float = PROFILE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            reader: On-chain reputation reader
            gateway: Bounty API gateway
            aggregator: Profile aggregator (default feedback limit if None)
            ttl: Freshness window in seconds, from refresh completion
            clock: Monotonic time source (injectable for tests)
        """
        self._reader = reader
        self._gateway = gateway
        self._aggregator = aggregator or ProfileAggregator()
        self._ttl = ttl
        self._clock = clock

        self._profiles: tuple[AgentProfile, ...] | None = None
        self._refreshed_at: float | None = None
        self._refresh_lock = asyncio.Lock()

    # ─── Introspection ───────────────────────────────────────────────

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def age(self) -> float | None:
        """Seconds since the last completed refresh, None before the first."""
        if self._refreshed_at is None:
            return None
        return self._clock() - self._refreshed_at

    @property
    def is_fresh(self) -> bool:
        age = self.age
        return self._profiles is not None and age is not None and age < self._ttl

    def invalidate(self) -> None:
        """Force the next read to refresh."""
        self._refreshed_at = None

    # ─── Public API ──────────────────────────────────────────────────

    async def get_profiles(self) -> list[AgentProfile]:
        """Return the ranked profile set, refreshing it when stale."""
        if self.is_fresh:
            return list(self._profiles)  # type: ignore[arg-type]

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            if not self.is_fresh:
                await self._refresh()
            return list(self._profiles)  # type: ignore[arg-type]

    async def get_profile(self, address: str) -> AgentProfile:
        """
        Look up one profile by address (case-insensitive).

        Raises:
            AgentNotFoundError: address is not in the current aggregation
        """
        key = address.lower()
        for profile in await self.get_profiles():
            if profile.key == key:
                return profile
        raise AgentNotFoundError(address)

    async def refresh(self) -> list[AgentProfile]:
        """Recompute immediately, regardless of freshness."""
        async with self._refresh_lock:
            await self._refresh()
            return list(self._profiles)  # type: ignore[arg-type]

    # ─── Refresh Pipeline ────────────────────────────────────────────

    async def _fetch_sources(
        self,
    ) -> tuple[list[BountyRecord], dict[str, OnChainReputation]]:
        bounties_result, on_chain_result = await asyncio.gather(
            self._gateway.fetch_bounties(),
            self._reader.enumerate_agents(),
            return_exceptions=True,
        )

        bounties: list[BountyRecord] = []
        if isinstance(bounties_result, BaseException):
            logger.warning(f"Bounty fetch failed: {bounties_result!r}")
        else:
            bounties = bounties_result

        on_chain: dict[str, OnChainReputation] = {}
        if isinstance(on_chain_result, BaseException):
            logger.warning(f"Registry enumeration failed: {on_chain_result!r}")
        else:
            on_chain = dict(on_chain_result)

        return bounties, on_chain

    async def _backfill(
        self,
        bounties: list[BountyRecord],
        on_chain: dict[str, OnChainReputation],
    ) -> None:
        """Read on-chain data for claimants missing from `on_chain`, in place."""
        missing = list(dict.fromkeys(
            b.claimed_by.lower()
            for b in bounties
            if b.claimed_by and b.claimed_by.lower() not in on_chain
        ))
        if not missing:
            return

        results = await asyncio.gather(
            *(self._reader.fetch_reputation(addr) for addr in missing),
            return_exceptions=True,
        )

        added = 0
        for addr, result in zip(missing, results):
            if isinstance(result, BaseException):
                logger.debug(f"Backfill read failed for {addr}: {result!r}")
                continue
            # Zero-footprint agents stay out of the map
            if result.has_footprint:
                on_chain[addr] = result
                added += 1

        logger.debug(f"Backfilled {added}/{len(missing)} claimants from the registry")

    async def _refresh(self) -> None:
        started = self._clock()

        bounties, on_chain = await self._fetch_sources()
        bounties = [b for b in bounties if b.title]
        await self._backfill(bounties, on_chain)

        profiles = tuple(self._aggregator.aggregate(bounties, on_chain))

        self._profiles = profiles
        self._refreshed_at = self._clock()

        logger.info(
            f"Refreshed {len(profiles)} agent profiles from {len(bounties)} bounties "
            f"and {len(on_chain)} on-chain records "
            f"(latency: {int((self._refreshed_at - started) * 1000)}ms)"
        )


__all__ = ["ProfileCache", "PROFILE_TTL"]
