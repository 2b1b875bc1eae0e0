"""
Profile Aggregator: merges bounty history with on-chain reputation.

Algorithm:
1. Walk bounties in list order; each claimed bounty creates (once) a profile
   for its claimant, seeded from on-chain data when the registry knows it
2. Count claims, completions, paid rewards, tags and history per claimant
3. Add profiles for on-chain agents that never claimed a bounty
4. Derive success rate (integer percent, half-up)
5. Rank by on-chain reputation, then earnings
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from repboard.core.logging import get_logger
from repboard.core.types import (
    UNTITLED,
    AgentProfile,
    BountyRecord,
    HistoryEntry,
    OnChainReputation,
)

logger = get_logger("aggregation.aggregator")

# Feedback entries kept on each profile
DEFAULT_FEEDBACK_LIMIT = 10


def success_rate(completed: int, claimed: int) -> int:
    """round(100 * completed / claimed), halves rounded up; 0 without claims."""
    if claimed <= 0:
        return 0
    rate = (Decimal(100) * completed / claimed).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(rate)


class ProfileAggregator:
    """
    Builds ranked AgentProfiles from bounties and on-chain reputation.

    `aggregate` is a pure function of its inputs: it never mutates them and
    never raises on malformed bounty entries.
    """

    def __init__(self, feedback_limit: int = DEFAULT_FEEDBACK_LIMIT) -> None:
        """
        Args:
            feedback_limit: Number of most recent feedback entries kept per profile
        """
        self._feedback_limit = feedback_limit

    def _new_profile(self, address: str, on_chain: OnChainReputation | None) -> AgentProfile:
        if on_chain is None:
            return AgentProfile(address=address)
        return AgentProfile(
            address=address,
            on_chain_reputation=on_chain.reputation_score,
            recent_feedback=list(on_chain.recent_feedback(self._feedback_limit)),
        )

    def aggregate(
        self,
        bounties: Iterable[BountyRecord],
        on_chain: Mapping[str, OnChainReputation],
    ) -> list[AgentProfile]:
        """
        Merge bounties and on-chain reputation into ranked profiles.

        Args:
            bounties: Bounty records in API order
            on_chain: On-chain reputation keyed by address (any casing)

        Returns:
            One profile per claimant / on-chain address, sorted descending by
            (on_chain_reputation, total_earnings)
        """
        profiles: dict[str, AgentProfile] = {}
        known = {k.lower(): v for k, v in on_chain.items()}

        for bounty in bounties:
            if not bounty.claimed_by:
                continue

            key = bounty.claimed_by.lower()
            profile = profiles.get(key)
            if profile is None:
                profile = self._new_profile(bounty.claimed_by, known.get(key))
                profiles[key] = profile

            reward = bounty.reward
            profile.bounties_claimed += 1
            if bounty.is_completed:
                profile.bounties_completed += 1
                profile.total_earnings += reward

            # Tags count what an agent worked on, not only what it delivered
            for tag in bounty.tags:
                profile.tags[tag] = profile.tags.get(tag, 0) + 1

            profile.history.append(HistoryEntry(
                bounty_id=bounty.id,
                title=bounty.title or UNTITLED,
                reward=reward,
                status=bounty.status,
                date=bounty.created_at or "",
            ))

        for key, reputation in known.items():
            if key not in profiles:
                profiles[key] = self._new_profile(reputation.address, reputation)

        for profile in profiles.values():
            profile.success_rate = success_rate(
                profile.bounties_completed, profile.bounties_claimed
            )

        ranked = sorted(
            profiles.values(),
            key=lambda p: (p.on_chain_reputation, p.total_earnings),
            reverse=True,
        )
        logger.debug(f"Aggregated {len(ranked)} agent profiles")
        return ranked


def aggregate_profiles(
    bounties: Iterable[BountyRecord],
    on_chain: Mapping[str, OnChainReputation],
    feedback_limit: int = DEFAULT_FEEDBACK_LIMIT,
) -> list[AgentProfile]:
    """Functional shortcut for `ProfileAggregator(feedback_limit).aggregate(...)`."""
    return ProfileAggregator(feedback_limit=feedback_limit).aggregate(bounties, on_chain)


__all__ = [
    "ProfileAggregator",
    "aggregate_profiles",
    "success_rate",
    "DEFAULT_FEEDBACK_LIMIT",
]
