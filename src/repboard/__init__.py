"""
repboard - Agent reputation dashboard backend

Merges ERC-8004 on-chain reputation with off-chain bounty history into one
ranked profile per agent.

Usage:
    >>> from repboard import ReputationService, Config
    >>>
    >>> async with ReputationService(Config.from_env()) as service:
    ...     agents = await service.list_agents()
    ...     top = agents[0]
    ...     print(top.address, top.on_chain_reputation, top.total_earnings)
"""

from repboard.aggregation import ProfileAggregator, ProfileCache, aggregate_profiles
from repboard.bounty import BountyGateway
from repboard.chain import OnChainReader, RegistryProvider
from repboard.core.config import Config
from repboard.core.exceptions import (
    AgentNotFoundError,
    BountySourceError,
    ConfigurationError,
    RegistryReadError,
    RepboardError,
)
from repboard.core.logging import configure_logging, get_logger
from repboard.core.types import (
    AgentProfile,
    BountyPayment,
    BountyRecord,
    BountyStatus,
    FeedbackEntry,
    HistoryEntry,
    OnChainReputation,
)
from repboard.service import ReputationService

__version__ = "0.1.0"

__all__ = [
    # Entry point
    "ReputationService",
    "Config",
    # Components
    "RegistryProvider",
    "OnChainReader",
    "BountyGateway",
    "ProfileAggregator",
    "ProfileCache",
    "aggregate_profiles",
    # Types
    "AgentProfile",
    "BountyPayment",
    "BountyRecord",
    "BountyStatus",
    "FeedbackEntry",
    "HistoryEntry",
    "OnChainReputation",
    # Errors
    "RepboardError",
    "ConfigurationError",
    "RegistryReadError",
    "BountySourceError",
    "AgentNotFoundError",
    # Logging
    "configure_logging",
    "get_logger",
]
