from unittest.mock import AsyncMock, MagicMock

import pytest


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_provider():
    """RegistryProvider double with every read returning an empty registry."""
    provider = MagicMock()
    provider.get_reputation = AsyncMock(return_value=0)
    provider.get_feedback = AsyncMock(return_value=[])
    provider.get_agent_count = AsyncMock(return_value=0)
    provider.get_agent_by_index = AsyncMock()
    return provider
