"""On-chain access to the ERC-8004 Reputation Registry."""

from repboard.chain.provider import RegistryProvider
from repboard.chain.reader import OnChainReader

__all__ = [
    "RegistryProvider",
    "OnChainReader",
]
