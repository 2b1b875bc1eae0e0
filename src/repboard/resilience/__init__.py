"""
Resilience Layer for repboard.

Provides retry mechanisms for upstream reads.
"""

from .retry import execute_with_retry, is_transient_error

__all__ = [
    "execute_with_retry",
    "is_transient_error",
]
