"""ReputationService - process-level entry point to the aggregation core."""

from __future__ import annotations

from typing import Any

import httpx

from repboard.aggregation.aggregator import ProfileAggregator
from repboard.aggregation.cache import ProfileCache
from repboard.bounty.gateway import BountyGateway
from repboard.chain.provider import RegistryProvider
from repboard.chain.reader import OnChainReader
from repboard.core.config import Config
from repboard.core.logging import get_logger
from repboard.core.registry import get_chain_id
from repboard.core.types import AgentProfile, OnChainReputation

logger = get_logger("service")


class ReputationService:
    """
    Agent reputation dashboard backend.

    Wires the registry reader, bounty gateway, aggregator and profile cache
    from a Config and owns the shared HTTP client. Construct one per process.

    Example:
        >>> async with ReputationService(Config.from_env()) as service:
        ...     agents = await service.list_agents()
        ...     agent = await service.get_agent("0xabc...")
    """

    def __init__(
        self,
        config: Config | None = None,
        http_client: httpx.AsyncClient | None = None,
        cache: ProfileCache | None = None,
        reader: OnChainReader | None = None,
    ) -> None:
        """
        Args:
            config: Service configuration (defaults to Config.from_env())
            http_client: Shared httpx client; created and owned if None
            cache: Pre-built profile cache (overrides config-driven wiring)
            reader: Pre-built on-chain reader (overrides config-driven wiring)
        """
        self._config = config or Config.from_env()
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=self._config.http_timeout)

        self._provider = RegistryProvider(
            rpc_url=self._config.rpc_url,
            registry_address=self._config.registry_address,
            http_client=self._http_client,
        )
        self._reader = reader or OnChainReader(
            self._provider,
            max_agents=self._config.max_agents,
            call_timeout=self._config.rpc_timeout,
        )
        self._gateway = BountyGateway(
            base_url=self._config.bounty_api_url,
            http_client=self._http_client,
        )
        self._cache = cache or ProfileCache(
            reader=self._reader,
            gateway=self._gateway,
            aggregator=ProfileAggregator(feedback_limit=self._config.feedback_limit),
            ttl=self._config.cache_ttl,
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def cache(self) -> ProfileCache:
        return self._cache

    async def __aenter__(self) -> ReputationService:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit: close the HTTP client."""
        await self.close()

    async def close(self) -> None:
        """Close the shared HTTP client if this service created it."""
        if self._owns_client:
            await self._http_client.aclose()

    # ─── Public API ──────────────────────────────────────────────────

    async def list_agents(self) -> list[AgentProfile]:
        """All agents, ranked by on-chain reputation then earnings."""
        return await self._cache.get_profiles()

    async def get_agent(self, address: str) -> AgentProfile:
        """
        One agent from the current aggregation.

        Raises:
            AgentNotFoundError: address is not part of the aggregation
        """
        return await self._cache.get_profile(address)

    async def get_reputation(self, address: str) -> OnChainReputation:
        """Live on-chain reputation for any address, bypassing the cache."""
        return await self._reader.fetch_reputation(address)

    def health(self) -> dict[str, Any]:
        """Static service status for liveness probes."""
        return {
            "status": "ok",
            "registry": self._config.registry_address,
            "chain": self._config.chain,
            "chainId": get_chain_id(self._config.chain),
            "cacheAge": self._cache.age,
        }
