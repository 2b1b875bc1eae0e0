"""
On-chain reputation reader.

Wraps RegistryProvider reads in the failure policy of the aggregation
pipeline: every per-address read returns a valid OnChainReputation, and
enumeration degrades to an empty mapping when the registry cannot list
its agents.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, TypeVar

from repboard.chain.provider import RegistryProvider
from repboard.core.logging import get_logger
from repboard.core.types import FeedbackEntry, OnChainReputation

logger = get_logger("chain.reader")

T = TypeVar("T")

# Enumeration fan-out cap
DEFAULT_MAX_AGENTS = 50

# Seconds per contract call, on top of the transport timeout
DEFAULT_CALL_TIMEOUT = 5.0


class OnChainReader:
    """
    Fault-tolerant reads of reputation and feedback from the registry.

    All reads that belong to one operation are launched together and joined
    with `asyncio.gather(..., return_exceptions=True)`; a failing or slow
    call only affects its own branch.
    """

    def __init__(
        self,
        provider: RegistryProvider,
        max_agents: int = DEFAULT_MAX_AGENTS,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
    ) -> None:
        """
        Args:
            provider: JSON-RPC registry provider
            max_agents: Maximum number of indices read during enumeration
            call_timeout: Deadline for each contract call; expiry counts as failure
        """
        self._provider = provider
        self._max_agents = max_agents
        self._call_timeout = call_timeout

    @property
    def max_agents(self) -> int:
        return self._max_agents

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._call_timeout)

    @staticmethod
    def decode(address: str, score: Any, feedback: Any) -> OnChainReputation:
        """
        Build an OnChainReputation from raw read results.

        `score` and `feedback` are either decoded values or the exception the
        read raised. Failed or mistyped reads become 0 / empty feedback.
        """
        reputation_score = 0
        if not isinstance(score, BaseException):
            try:
                reputation_score = max(int(score), 0)
            except (TypeError, ValueError):
                reputation_score = 0

        entries: tuple[FeedbackEntry, ...] = ()
        if isinstance(feedback, (list, tuple)):
            entries = tuple(FeedbackEntry.from_raw(f) for f in feedback)

        return OnChainReputation(
            address=address,
            reputation_score=reputation_score,
            feedback=entries,
        )

    async def fetch_reputation(self, address: str) -> OnChainReputation:
        """
        Read score and feedback for one address.

        Never raises: absence of on-chain data and a failed read both yield
        `OnChainReputation(address, 0, ())`.
        """
        score, feedback = await asyncio.gather(
            self._call(self._provider.get_reputation(address)),
            self._call(self._provider.get_feedback(address)),
            return_exceptions=True,
        )

        for name, outcome in (("getReputation", score), ("getFeedback", feedback)):
            if isinstance(outcome, BaseException):
                logger.debug(f"{name} failed for {address}: {outcome!r}")

        return self.decode(address, score, feedback)

    async def _fetch_indexed(self, index: int) -> OnChainReputation:
        agent_address = await self._call(self._provider.get_agent_by_index(index))
        return await self.fetch_reputation(agent_address)

    async def enumerate_agents(self) -> dict[str, OnChainReputation]:
        """
        Read up to `max_agents` registered agents with their reputation.

        Returns a mapping keyed by lower-cased address. Registries that do not
        support enumeration (count read fails) yield an empty mapping.
        """
        try:
            count = await self._call(self._provider.get_agent_count())
        except Exception as e:
            logger.info(f"Registry enumeration unavailable: {e!r}")
            return {}

        if count <= 0:
            return {}

        batch_size = min(count, self._max_agents)
        if count > batch_size:
            logger.debug(f"Registry lists {count} agents; reading the first {batch_size}")

        results = await asyncio.gather(
            *(self._fetch_indexed(i) for i in range(batch_size)),
            return_exceptions=True,
        )

        reputation_map: dict[str, OnChainReputation] = {}
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.debug(f"Skipping registry index {index}: {result!r}")
                continue
            reputation_map[result.address.lower()] = result

        logger.info(f"Enumerated {len(reputation_map)}/{batch_size} registry agents")
        return reputation_map


__all__ = ["OnChainReader", "DEFAULT_MAX_AGENTS", "DEFAULT_CALL_TIMEOUT"]
