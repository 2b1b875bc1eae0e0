"""
Bounty API gateway.

Fetches the full bounty list from the off-chain bounty tracker. The
aggregation pipeline treats this source as optional: any failure yields an
empty list so on-chain-only profiles are still produced.
"""

from __future__ import annotations

from typing import Any

import httpx

from repboard.core.exceptions import BountySourceError
from repboard.core.logging import get_logger
from repboard.core.types import BountyRecord
from repboard.resilience.retry import DEFAULT_ATTEMPTS, execute_with_retry

logger = get_logger("bounty.gateway")

DEFAULT_BOUNTY_API = "https://bounty.owockibot.xyz"


class BountyGateway:
    """
    HTTP client for `GET {base_url}/bounties`.

    Usage:
        gateway = BountyGateway("https://bounty.owockibot.xyz")
        bounties = await gateway.fetch_bounties()
    """

    HTTP_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str = DEFAULT_BOUNTY_API,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        retry_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        """
        Args:
            base_url: Bounty API root (without the /bounties path)
            http_client: Shared httpx client (for connection pooling)
            timeout: Request timeout for an owned client
            retry_attempts: Attempts per fetch for transient failures
        """
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._owns_client = False
        self._timeout = timeout or self.HTTP_TIMEOUT
        self._retry_attempts = max(retry_attempts, 1)

    @property
    def bounties_url(self) -> str:
        return f"{self._base_url}/bounties"

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def get_raw_bounties(self) -> list[dict[str, Any]]:
        """
        Fetch the raw bounty array.

        Raises:
            BountySourceError: non-2xx status, non-JSON body or non-array JSON
            httpx.HTTPError: transport failure
        """
        client = await self._get_client()
        response = await client.get(self.bounties_url)
        if response.is_error:
            raise BountySourceError(
                f"Bounty API returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise BountySourceError("Bounty API returned a non-JSON body") from e

        if not isinstance(payload, list):
            raise BountySourceError(
                "Bounty API returned a non-array body",
                details={"type": type(payload).__name__},
            )

        return [item for item in payload if isinstance(item, dict)]

    async def fetch_bounties(self) -> list[BountyRecord]:
        """
        Fetch and parse all bounties.

        Never raises: on failure the error is logged and an empty list returned.
        """
        try:
            raw = await execute_with_retry(
                self.get_raw_bounties, attempts=self._retry_attempts
            )
        except (BountySourceError, httpx.HTTPError) as e:
            logger.warning(f"Bounty API unavailable, continuing without bounties: {e}")
            return []

        bounties = [BountyRecord.from_api_response(item) for item in raw]
        logger.debug(f"Fetched {len(bounties)} bounties from {self.bounties_url}")
        return bounties


__all__ = ["BountyGateway", "DEFAULT_BOUNTY_API"]
