"""
Exception hierarchy for repboard.

All service-specific exceptions inherit from RepboardError. Only
AgentNotFoundError is meant to reach callers of the public API; the
other errors are raised at transport seams and absorbed one layer up.
"""

from __future__ import annotations

from typing import Any


class RepboardError(Exception):
    """
    Base exception for all repboard errors.

    Example:
        >>> try:
        ...     await service.get_agent("0xabc")
        ... except RepboardError as e:
        ...     print(f"Lookup failed: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RepboardError):
    """
    Configuration is missing or invalid.

    Raised when:
    - A numeric limit or timeout is not positive
    - The registry address is empty
    - An environment variable cannot be parsed
    """

    pass


class RegistryReadError(RepboardError):
    """
    A registry contract read failed.

    Raised by RegistryProvider when no RPC endpoint returned a usable
    result (timeout, HTTP error, JSON-RPC error, revert, empty return data).
    OnChainReader converts it into default values.
    """

    def __init__(
        self,
        message: str,
        function: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.function = function

    def __str__(self) -> str:
        if self.function:
            return f"[{self.function}] {super().__str__()}"
        return super().__str__()


class BountySourceError(RepboardError):
    """
    The bounty API could not be read.

    Raised when:
    - The HTTP request fails or times out
    - The response status is not 2xx
    - The body is not a JSON array
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class AgentNotFoundError(RepboardError):
    """
    The requested address is not part of the current aggregation.

    This is the only lookup outcome that is surfaced to callers instead
    of being replaced by a default value.
    """

    def __init__(self, address: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Agent not found: {address}", details)
        self.address = address
