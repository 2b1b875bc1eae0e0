"""
Type definitions for repboard.

Bounty records as delivered by the bounty API, on-chain reputation as read
from the registry, and the merged AgentProfile served to the dashboard.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

# Bounty payments are integer micro-units (6 decimals, USDC)
MICRO_UNITS = Decimal(1_000_000)

UNTITLED = "Untitled"


class BountyStatus(str, Enum):
    """Lifecycle state of a bounty as reported by the bounty API."""

    COMPLETED = "completed"
    CLAIMED = "claimed"
    SUBMITTED = "submitted"
    OTHER = "other"

    @classmethod
    def classify(cls, value: str | None) -> BountyStatus:
        """Map a raw status string onto the known set; unknown values are OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


def _to_decimal(value: Any) -> Decimal:
    """Parse an integer-ish API value; anything unparseable is zero."""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    # JSON output renders amounts as floats
    if not parsed.is_finite() or not math.isfinite(float(parsed)):
        return Decimal(0)
    return parsed


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


# ---------------------------------------------------------------------------
# Bounty API
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BountyPayment:
    """Payment block of a completed bounty, amounts in micro-units."""

    gross_amount: str | None = None
    gross_reward: str | None = None

    @property
    def gross_micro_units(self) -> Decimal:
        """`grossAmount`, falling back to `grossReward` when empty."""
        return _to_decimal(self.gross_amount or self.gross_reward or 0)

    @classmethod
    def from_api_response(cls, data: Any) -> BountyPayment | None:
        if not isinstance(data, dict):
            return None
        return cls(
            gross_amount=data.get("grossAmount"),
            gross_reward=data.get("grossReward"),
        )


@dataclass(frozen=True)
class BountyRecord:
    """A single bounty from the bounty API."""

    id: str
    title: str
    status: str
    description: str = ""
    reward_raw: str = ""
    reward_formatted: str = ""
    tags: tuple[str, ...] = ()
    claimed_by: str | None = None
    created_at: str | None = None
    completed_at: str | None = None
    payment: BountyPayment | None = None

    @property
    def is_completed(self) -> bool:
        return BountyStatus.classify(self.status) is BountyStatus.COMPLETED

    @property
    def reward(self) -> Decimal:
        """Paid reward in whole currency units; zero unless completed."""
        if not self.is_completed or self.payment is None:
            return Decimal(0)
        return self.payment.gross_micro_units / MICRO_UNITS

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> BountyRecord:
        raw_tags = data.get("tags")
        tags: tuple[str, ...] = ()
        if isinstance(raw_tags, list):
            # Tags are a set; keep first-seen order
            tags = tuple(dict.fromkeys(str(t) for t in raw_tags if t is not None and t != ""))

        bounty_id = data.get("id")
        claimed_by = data.get("claimedBy")
        title = data.get("title")
        return cls(
            id="" if bounty_id is None else str(bounty_id),
            title=str(title) if title else "",
            status=str(data.get("status") or ""),
            description=str(data.get("description") or ""),
            reward_raw=str(data.get("reward") or ""),
            reward_formatted=str(data.get("rewardFormatted") or ""),
            tags=tags,
            claimed_by=str(claimed_by) if claimed_by else None,
            created_at=data.get("createdAt") or None,
            completed_at=data.get("completedAt") or None,
            payment=BountyPayment.from_api_response(data.get("payment")),
        )


# ---------------------------------------------------------------------------
# Reputation Registry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FeedbackEntry:
    """One on-chain rating of an agent by another party."""

    from_address: str
    score: int
    comment: str = ""
    timestamp: int = 0

    @classmethod
    def from_raw(cls, raw: Any) -> FeedbackEntry:
        """
        Decode a registry feedback tuple.

        Accepts a mapping or a `(from, score, comment, timestamp)` sequence.
        Missing or mistyped fields fall back to "", 0, "", 0.
        """
        if isinstance(raw, dict):
            values = [raw.get("from"), raw.get("score"), raw.get("comment"), raw.get("timestamp")]
        elif isinstance(raw, (list, tuple)):
            values = list(raw[:4]) + [None] * (4 - len(raw[:4]))
        else:
            values = [None, None, None, None]

        from_address, score, comment, timestamp = values
        return cls(
            from_address=str(from_address) if from_address else "",
            score=_to_int(score),
            comment=str(comment) if comment else "",
            timestamp=_to_int(timestamp),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_address,
            "score": self.score,
            "comment": self.comment,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class OnChainReputation:
    """Reputation score and feedback of one address in the registry."""

    address: str
    reputation_score: int = 0
    feedback: tuple[FeedbackEntry, ...] = ()

    @property
    def has_footprint(self) -> bool:
        """True when the registry holds anything for this address."""
        return self.reputation_score > 0 or len(self.feedback) > 0

    @classmethod
    def empty(cls, address: str) -> OnChainReputation:
        return cls(address=address)

    def recent_feedback(self, limit: int) -> tuple[FeedbackEntry, ...]:
        """Last `limit` entries in registry order."""
        if limit <= 0:
            return ()
        return self.feedback[-limit:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "reputationScore": self.reputation_score,
            "feedback": [f.to_dict() for f in self.feedback],
        }


# ---------------------------------------------------------------------------
# Aggregation output
# ---------------------------------------------------------------------------

@dataclass
class HistoryEntry:
    """One bounty in an agent's history."""

    bounty_id: str
    title: str
    reward: Decimal
    status: str
    date: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "bountyId": self.bounty_id,
            "title": self.title,
            "reward": float(self.reward),
            "status": self.status,
            "date": self.date,
        }


@dataclass
class AgentProfile:
    """Merged on-chain and bounty view of one agent."""

    address: str
    on_chain_reputation: int = 0
    total_earnings: Decimal = Decimal(0)
    bounties_claimed: int = 0
    bounties_completed: int = 0
    success_rate: int = 0
    tags: dict[str, int] = field(default_factory=dict)
    recent_feedback: list[FeedbackEntry] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Case-insensitive identity of the profile."""
        return self.address.lower()

    def to_dict(self) -> dict[str, Any]:
        """JSON shape consumed by the dashboard."""
        return {
            "address": self.address,
            "onChainReputation": self.on_chain_reputation,
            "totalEarnings": float(self.total_earnings),
            "bountiesCompleted": self.bounties_completed,
            "bountiesClaimed": self.bounties_claimed,
            "successRate": self.success_rate,
            "tags": dict(self.tags),
            "recentFeedback": [f.to_dict() for f in self.recent_feedback],
            "history": [h.to_dict() for h in self.history],
        }
