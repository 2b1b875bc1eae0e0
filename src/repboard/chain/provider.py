"""
Reputation Registry Provider: lightweight JSON-RPC for registry reads.

Uses `eth_call` via httpx to read from the ERC-8004 Reputation Registry.
No web3.py dependency: calldata is built from the precomputed selectors in
`repboard.core.registry` and return data is decoded by hand.

Configuration (pick one):
    1. Constructor: RegistryProvider(rpc_url="https://mainnet.base.org")
    2. Env var:     REPBOARD_RPC_URL=https://mainnet.base.org

For fallback, pass comma-separated URLs:
    REPBOARD_RPC_URL=https://mainnet.base.org,https://base.llamarpc.com

Every read raises RegistryReadError when no endpoint produced a usable
result. Callers that need defaults (OnChainReader) catch it.
"""

from __future__ import annotations

import os
from typing import Any

import httpx

from repboard.core.exceptions import RegistryReadError
from repboard.core.logging import get_logger
from repboard.core.registry import (
    DEFAULT_REGISTRY_ADDRESS,
    FUNCTION_SELECTORS,
    to_checksum_address,
)

logger = get_logger("chain.provider")

# Environment variable for the RPC endpoint
RPC_ENV_VAR = "REPBOARD_RPC_URL"

# Upper bound on decoded feedback entries per address
MAX_FEEDBACK_ENTRIES = 1000

_WORD = 64  # one ABI word in hex characters


class RegistryProvider:
    """
    JSON-RPC provider for Reputation Registry reads.

    Supports multi-provider fallback: if the primary RPC fails, the next URL
    in the list is tried.

    Usage:
        provider = RegistryProvider(rpc_url="https://mainnet.base.org")

        score = await provider.get_reputation("0xabc...")
        feedback = await provider.get_feedback("0xabc...")
        count = await provider.get_agent_count()
        agent = await provider.get_agent_by_index(0)
    """

    RPC_TIMEOUT = 5.0  # seconds per JSON-RPC call

    def __init__(
        self,
        rpc_url: str | None = None,
        registry_address: str = DEFAULT_REGISTRY_ADDRESS,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            rpc_url: RPC endpoint URL(s). Supports comma-separated for
                     multi-provider fallback. Falls back to REPBOARD_RPC_URL env var.
            registry_address: Reputation Registry contract address.
            http_client: Shared httpx client (for connection pooling).
            timeout: Per-request timeout for an owned client.
        """
        raw_url = rpc_url or os.environ.get(RPC_ENV_VAR, "")
        self._rpc_urls: list[str] = [
            u.strip() for u in raw_url.split(",") if u.strip()
        ]
        self._registry = registry_address
        self._http_client = http_client
        self._owns_client = False
        self._timeout = timeout or self.RPC_TIMEOUT

        if not self._rpc_urls:
            logger.warning(
                f"No RPC URL configured. Set {RPC_ENV_VAR} env var or pass "
                f"rpc_url to RegistryProvider. On-chain reads will return defaults."
            )

    @property
    def is_configured(self) -> bool:
        """Whether an RPC endpoint is configured."""
        return len(self._rpc_urls) > 0

    @property
    def registry_address(self) -> str:
        return self._registry

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

    # ─── ABI Encoding Helpers ────────────────────────────────────────

    @staticmethod
    def _encode_uint256(val: int) -> str:
        """Encode uint256 as 32-byte hex."""
        return f"{val:064x}"

    @staticmethod
    def _encode_address(addr: str) -> str:
        """Encode address as 32-byte hex (left-padded)."""
        addr_clean = addr.lower().replace("0x", "")
        return f"{addr_clean:>064}"

    @staticmethod
    def _decode_address(hex_word: str) -> str:
        """Decode a checksummed address from a 32-byte hex word."""
        if not hex_word or len(hex_word) < _WORD:
            return ""
        return to_checksum_address(hex_word[_WORD - 40:_WORD])

    @staticmethod
    def _decode_uint256(hex_word: str) -> int:
        """Decode uint256 from a 32-byte hex word."""
        if not hex_word:
            return 0
        return int(hex_word[:_WORD], 16)

    @staticmethod
    def _decode_int256(hex_word: str) -> int:
        """Decode a sign-extended intN from a 32-byte hex word."""
        raw = int(hex_word[:_WORD], 16)
        if raw >= (1 << 255):
            raw -= (1 << 256)  # Two's complement for negative
        return raw

    @staticmethod
    def _decode_string_at(hex_data: str, start: int) -> str:
        """Decode a string whose length word begins at hex index `start`."""
        if len(hex_data) < start + _WORD:
            raise ValueError("string length out of bounds")
        str_len = int(hex_data[start:start + _WORD], 16)
        str_start = start + _WORD
        str_hex = hex_data[str_start:str_start + str_len * 2]
        if len(str_hex) != str_len * 2:
            raise ValueError("string data out of bounds")
        return bytes.fromhex(str_hex).decode("utf-8", errors="replace")

    @classmethod
    def _decode_feedback_array(cls, hex_data: str) -> list[dict[str, Any]]:
        """
        Decode `(address from, int8 score, string comment, uint256 timestamp)[]`.

        Layout: head offset → array length → per-element offsets (relative to
        the first offset word) → each tuple, whose comment offset is relative
        to the tuple start.
        """
        if len(hex_data) < 2 * _WORD:
            raise ValueError("feedback payload too short")

        array_start = int(hex_data[0:_WORD], 16) * 2
        count = int(hex_data[array_start:array_start + _WORD], 16)
        base = array_start + _WORD

        entries: list[dict[str, Any]] = []
        for k in range(min(count, MAX_FEEDBACK_ENTRIES)):
            pointer = base + k * _WORD
            if pointer + _WORD > len(hex_data):
                raise ValueError("feedback element offset out of bounds")
            tuple_start = base + int(hex_data[pointer:pointer + _WORD], 16) * 2
            if tuple_start + 4 * _WORD > len(hex_data):
                raise ValueError("feedback tuple out of bounds")

            words = [
                hex_data[tuple_start + i * _WORD:tuple_start + (i + 1) * _WORD]
                for i in range(4)
            ]
            comment_start = tuple_start + int(words[2], 16) * 2
            entries.append({
                "from": cls._decode_address(words[0]),
                "score": cls._decode_int256(words[1]),
                "comment": cls._decode_string_at(hex_data, comment_start),
                "timestamp": cls._decode_uint256(words[3]),
            })
        return entries

    # ─── JSON-RPC Call with Multi-Provider Fallback ──────────────────

    async def _eth_call(self, function: str, args: str = "") -> str:
        """
        Execute an eth_call against the registry with multi-provider fallback.

        Args:
            function: ABI function name (key of FUNCTION_SELECTORS)
            args: ABI-encoded arguments (hex, no 0x)

        Returns:
            Hex result string (without 0x prefix)

        Raises:
            RegistryReadError: no provider returned usable data
        """
        if not self._rpc_urls:
            raise RegistryReadError("No RPC URL configured", function=function)

        client = await self._get_client()
        payload = {
            "jsonrpc": "2.0",
            "method": "eth_call",
            "params": [
                {"to": self._registry, "data": f"0x{FUNCTION_SELECTORS[function]}{args}"},
                "latest",
            ],
            "id": 1,
        }

        last_error: Exception | None = None
        for i, rpc_url in enumerate(self._rpc_urls):
            try:
                response = await client.post(rpc_url, json=payload)
                response.raise_for_status()
                result = response.json()

                if "error" in result:
                    logger.debug(f"eth_call {function} RPC error from {rpc_url}: {result['error']}")
                    last_error = RegistryReadError(str(result["error"]), function=function)
                    continue  # Try next provider

                raw = result.get("result") or "0x"
                if raw in ("0x", "0x0"):
                    raise RegistryReadError("Empty return data", function=function)

                return raw[2:]

            except RegistryReadError:
                raise
            except httpx.TimeoutException:
                logger.warning(
                    f"RPC timeout from provider {i+1}/{len(self._rpc_urls)}: {rpc_url}, "
                    f"{'falling back' if i < len(self._rpc_urls) - 1 else 'no more providers'}"
                )
                last_error = httpx.TimeoutException(f"Timeout: {rpc_url}")
            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"RPC HTTP {e.response.status_code} from provider {i+1}/{len(self._rpc_urls)}: {rpc_url}"
                )
                last_error = e
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"RPC error from provider {i+1}/{len(self._rpc_urls)}: {e}")
                last_error = e

        raise RegistryReadError(
            f"All {len(self._rpc_urls)} RPC providers failed",
            function=function,
            details={"last_error": str(last_error)},
        )

    # ─── Reputation Registry Reads ───────────────────────────────────

    async def get_reputation(self, address: str) -> int:
        """Read getReputation(address) → score."""
        result = await self._eth_call("getReputation", self._encode_address(address))
        try:
            return self._decode_uint256(result)
        except ValueError as e:
            raise RegistryReadError(f"Undecodable score: {e}", function="getReputation") from e

    async def get_feedback(self, address: str) -> list[dict[str, Any]]:
        """Read getFeedback(address) → list of {from, score, comment, timestamp}."""
        result = await self._eth_call("getFeedback", self._encode_address(address))
        try:
            return self._decode_feedback_array(result)
        except (ValueError, IndexError) as e:
            raise RegistryReadError(f"Undecodable feedback: {e}", function="getFeedback") from e

    async def get_agent_count(self) -> int:
        """Read getAgentCount() → number of registered agents."""
        result = await self._eth_call("getAgentCount")
        try:
            return self._decode_uint256(result)
        except ValueError as e:
            raise RegistryReadError(f"Undecodable count: {e}", function="getAgentCount") from e

    async def get_agent_by_index(self, index: int) -> str:
        """Read getAgentByIndex(index) → agent address."""
        result = await self._eth_call("getAgentByIndex", self._encode_uint256(index))
        address = self._decode_address(result)
        if not address:
            raise RegistryReadError("Undecodable address", function="getAgentByIndex")
        return address


__all__ = [
    "RegistryProvider",
    "RPC_ENV_VAR",
]
