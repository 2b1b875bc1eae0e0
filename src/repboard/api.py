"""FastAPI endpoints for the reputation dashboard.

This module exposes the aggregation core to the dashboard frontend:
- Ranked agent list
- Single agent profile
- Live on-chain reputation for any address
- Health check
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from repboard.core.exceptions import AgentNotFoundError
from repboard.core.logging import get_logger
from repboard.service import ReputationService

logger = get_logger("api")

CACHE_HEADERS = {"Cache-Control": "public, max-age=60"}


def create_app(service: ReputationService | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Service to dispatch to. When None, one is created from the
                 environment on startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = service is None
        app.state.service = service or ReputationService()
        logger.info(
            f"Reputation API ready: registry {app.state.service.config.registry_address} "
            f"on {app.state.service.config.chain}"
        )
        try:
            yield
        finally:
            if owned:
                await app.state.service.close()

    app = FastAPI(
        title="Agent Reputation API",
        description="ERC-8004 on-chain reputation merged with bounty history",
        version="0.1.0",
        lifespan=lifespan,
    )

    def _service(request: Request) -> ReputationService:
        return request.app.state.service

    @app.get("/api/agents")
    async def list_agents(request: Request) -> JSONResponse:
        """All agents, ranked by on-chain reputation then earnings."""
        try:
            agents = await _service(request).list_agents()
        except Exception as e:
            logger.error(f"Agent list failed: {e!r}")
            return JSONResponse({"error": "API error"}, status_code=502)
        return JSONResponse([a.to_dict() for a in agents], headers=CACHE_HEADERS)

    @app.get("/api/agent/{address}")
    async def get_agent(address: str, request: Request) -> JSONResponse:
        """One agent profile from the current aggregation."""
        try:
            agent = await _service(request).get_agent(address)
        except AgentNotFoundError:
            return JSONResponse({"error": "Agent not found"}, status_code=404)
        except Exception as e:
            logger.error(f"Agent lookup failed for {address}: {e!r}")
            return JSONResponse({"error": "API error"}, status_code=502)
        return JSONResponse(agent.to_dict(), headers=CACHE_HEADERS)

    @app.get("/api/reputation/{address}")
    async def get_reputation(address: str, request: Request) -> JSONResponse:
        """Live on-chain reputation, bypassing the profile cache."""
        reputation = await _service(request).get_reputation(address)
        return JSONResponse(reputation.to_dict())

    @app.get("/health")
    async def health(request: Request) -> dict:
        """Health check endpoint."""
        return _service(request).health()

    return app
