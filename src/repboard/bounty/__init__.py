"""Off-chain bounty source."""

from repboard.bounty.gateway import BountyGateway

__all__ = ["BountyGateway"]
