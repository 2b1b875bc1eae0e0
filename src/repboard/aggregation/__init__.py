"""Aggregation module: profile merge and TTL cache."""

from repboard.aggregation.aggregator import ProfileAggregator, aggregate_profiles
from repboard.aggregation.cache import ProfileCache

__all__ = [
    "ProfileAggregator",
    "ProfileCache",
    "aggregate_profiles",
]
