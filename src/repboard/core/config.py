"""
Configuration management for repboard.

Handles loading configuration from environment variables and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Callable, TypeVar

from repboard.core.exceptions import ConfigurationError
from repboard.core.registry import (
    DEFAULT_CHAIN,
    DEFAULT_REGISTRY_ADDRESS,
    get_reputation_registry,
)

T = TypeVar("T")


def _get_env_var(name: str, default: str) -> str:
    """Get environment variable, treating blank values as unset."""
    value = os.environ.get(name, "").strip()
    return value or default


def _get_env_typed(name: str, default: T, cast: Callable[[str], T]) -> T:
    """Get environment variable converted with `cast`, or `default` when unset."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}", details={"error": str(e)}
        ) from e


@dataclass(frozen=True)
class Config:
    """Service configuration."""

    # Upstreams
    rpc_url: str = "https://mainnet.base.org"
    bounty_api_url: str = "https://bounty.owockibot.xyz"
    registry_address: str = DEFAULT_REGISTRY_ADDRESS
    chain: str = DEFAULT_CHAIN

    # Aggregation limits
    cache_ttl: float = 60.0  # seconds, measured from refresh completion
    max_agents: int = 50  # cap on registry enumeration fan-out
    feedback_limit: int = 10  # feedback entries kept per profile

    # Timeouts (seconds)
    rpc_timeout: float = 5.0
    http_timeout: float = 10.0

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 3002

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.registry_address:
            raise ConfigurationError("registry_address is required")
        if self.cache_ttl <= 0:
            raise ConfigurationError("cache_ttl must be positive", {"cache_ttl": self.cache_ttl})
        if self.max_agents <= 0:
            raise ConfigurationError("max_agents must be positive", {"max_agents": self.max_agents})
        if self.feedback_limit <= 0:
            raise ConfigurationError(
                "feedback_limit must be positive", {"feedback_limit": self.feedback_limit}
            )
        if self.rpc_timeout <= 0 or self.http_timeout <= 0:
            raise ConfigurationError(
                "timeouts must be positive",
                {"rpc_timeout": self.rpc_timeout, "http_timeout": self.http_timeout},
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Load configuration from environment variables."""
        chain = overrides.get("chain") or _get_env_var("REPBOARD_CHAIN", default=cls.chain)

        registry_address = overrides.get("registry_address") or _get_env_var(
            "REPBOARD_REGISTRY_ADDRESS", default=get_reputation_registry(chain) or ""
        )
        if not registry_address:
            raise ConfigurationError(
                f"No known Reputation Registry on chain {chain!r}; "
                "set REPBOARD_REGISTRY_ADDRESS",
                details={"chain": chain},
            )

        values: dict[str, Any] = {
            "rpc_url": _get_env_var("REPBOARD_RPC_URL", default=cls.rpc_url),
            "bounty_api_url": _get_env_var("REPBOARD_BOUNTY_API_URL", default=cls.bounty_api_url),
            "registry_address": registry_address,
            "chain": chain,
            "cache_ttl": _get_env_typed("REPBOARD_CACHE_TTL", cls.cache_ttl, float),
            "max_agents": _get_env_typed("REPBOARD_MAX_AGENTS", cls.max_agents, int),
            "feedback_limit": _get_env_typed("REPBOARD_FEEDBACK_LIMIT", cls.feedback_limit, int),
            "rpc_timeout": _get_env_typed("REPBOARD_RPC_TIMEOUT", cls.rpc_timeout, float),
            "http_timeout": _get_env_typed("REPBOARD_HTTP_TIMEOUT", cls.http_timeout, float),
            "host": _get_env_var("REPBOARD_HOST", default=cls.host),
            "port": _get_env_typed("PORT", cls.port, int),
            "log_level": _get_env_var("REPBOARD_LOG_LEVEL", default=cls.log_level),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)
