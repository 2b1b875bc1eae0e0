"""
Integration tests for ReputationService.

Both upstreams (JSON-RPC node and bounty API) are served by one
httpx.MockTransport, so the full refresh pipeline runs against real
encoding, decoding and aggregation.
"""

import json
from decimal import Decimal

import httpx
import pytest

from factories import abi_address, abi_feedback, abi_word, bounty_json
from repboard.core.config import Config
from repboard.core.exceptions import AgentNotFoundError
from repboard.core.registry import FUNCTION_SELECTORS
from repboard.service import ReputationService

WORKER = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
NEWCOMER = "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
VETERAN = "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB"
RATER = "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb"

SELECTOR_NAMES = {selector: name for name, selector in FUNCTION_SELECTORS.items()}


class FakeUpstreams:
    """Bounty API plus a registry node holding per-address state."""

    def __init__(self, bounties, scores=None, feedback=None, agents=None):
        self.bounties = bounties
        self.scores = scores or {}
        self.feedback = feedback or {}
        self.agents = agents  # None: enumeration unsupported
        self.rpc_calls = []
        self.bounty_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "bounty.test":
            self.bounty_calls += 1
            return httpx.Response(200, json=self.bounties)
        return self.rpc(request)

    def rpc(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        data = body["params"][0]["data"][2:]
        name, args = SELECTOR_NAMES[data[:8]], data[8:]
        self.rpc_calls.append(name)

        if name == "getAgentCount":
            if self.agents is None:
                return httpx.Response(
                    200,
                    json={"jsonrpc": "2.0", "id": 1, "error": {"code": 3, "message": "execution reverted"}},
                )
            result = abi_word(len(self.agents))
        elif name == "getAgentByIndex":
            result = abi_address(self.agents[int(args, 16)])
        else:
            address = "0x" + args[-40:]
            if name == "getReputation":
                result = abi_word(self.scores.get(address, 0))
            else:
                result = abi_feedback(self.feedback.get(address, []))

        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x" + result})


def make_service(upstreams: FakeUpstreams) -> ReputationService:
    config = Config(rpc_url="https://rpc.test", bounty_api_url="https://bounty.test")
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstreams))
    return ReputationService(config, http_client=client)


@pytest.fixture
def upstreams():
    return FakeUpstreams(
        bounties=[
            bounty_json(id="1", title="Fix bug", claimed_by=WORKER, tags=["rust"]),
            bounty_json(id="2", title="Write docs", claimed_by=NEWCOMER, status="claimed", tags=["docs"]),
            bounty_json(id="3", title="", claimed_by=VETERAN),
        ],
        scores={WORKER.lower(): 42},
        feedback={WORKER.lower(): [(RATER, 5, "Delivered on time", 1_700_000_000)]},
    )


class TestReputationService:
    """End-to-end refresh through the service."""

    @pytest.mark.asyncio
    async def test_list_agents_with_backfill(self, upstreams):
        """Without enumeration, claimants are backfilled one by one."""
        async with make_service(upstreams) as service:
            agents = await service.list_agents()

        assert [a.address for a in agents] == [WORKER, NEWCOMER]

        worker, newcomer = agents
        assert worker.on_chain_reputation == 42
        assert worker.total_earnings == Decimal("5")
        assert worker.success_rate == 100
        assert worker.recent_feedback[0].from_address == RATER
        assert worker.recent_feedback[0].comment == "Delivered on time"

        assert newcomer.on_chain_reputation == 0
        assert newcomer.bounties_claimed == 1
        assert newcomer.success_rate == 0
        assert newcomer.tags == {"docs": 1}

        assert upstreams.rpc_calls.count("getAgentCount") == 1
        assert "getAgentByIndex" not in upstreams.rpc_calls

    @pytest.mark.asyncio
    async def test_enumerated_agents_included(self, upstreams):
        upstreams.agents = [VETERAN]
        upstreams.scores[VETERAN.lower()] = 99

        async with make_service(upstreams) as service:
            agents = await service.list_agents()

        assert agents[0].address == VETERAN
        assert agents[0].on_chain_reputation == 99
        assert agents[0].history == []

    @pytest.mark.asyncio
    async def test_profiles_cached(self, upstreams):
        async with make_service(upstreams) as service:
            await service.list_agents()
            await service.get_agent(WORKER.lower())
            await service.list_agents()

        assert upstreams.bounty_calls == 1

    @pytest.mark.asyncio
    async def test_get_agent_not_found(self, upstreams):
        async with make_service(upstreams) as service:
            with pytest.raises(AgentNotFoundError):
                await service.get_agent(RATER)

    @pytest.mark.asyncio
    async def test_live_reputation_bypasses_cache(self, upstreams):
        async with make_service(upstreams) as service:
            rep = await service.get_reputation(WORKER)

            assert rep.reputation_score == 42
            assert len(rep.feedback) == 1
            assert upstreams.bounty_calls == 0
            assert service.cache.age is None

    @pytest.mark.asyncio
    async def test_bounty_api_down(self, upstreams):
        """On-chain-only profiles survive a bounty API outage."""
        upstreams.agents = [VETERAN]
        upstreams.scores[VETERAN.lower()] = 10

        def handler(request):
            if request.url.host == "bounty.test":
                return httpx.Response(404)
            return upstreams.rpc(request)

        config = Config(rpc_url="https://rpc.test", bounty_api_url="https://bounty.test")
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with ReputationService(config, http_client=client) as service:
            agents = await service.list_agents()

        assert [a.address for a in agents] == [VETERAN]

    def test_health(self, upstreams):
        service = make_service(upstreams)

        assert service.health() == {
            "status": "ok",
            "registry": service.config.registry_address,
            "chain": "base",
            "chainId": 8453,
            "cacheAge": None,
        }
