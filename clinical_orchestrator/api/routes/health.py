"""Liveness endpoints for the orchestration API."""

from fastapi import APIRouter

from ... import __version__
from ...core import AGENT_DESCRIPTIONS

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """
    Process liveness; does not touch the orchestration system.

    Returns:
        Status, version and the agents turns can be routed to
    """
    return {
        "status": "healthy",
        "version": __version__,
        "agents": {agent.value: "available" for agent in AGENT_DESCRIPTIONS},
    }


@router.get("/")
async def root() -> dict:
    return {
        "name": "Clinical Orchestrator API",
        "version": __version__,
        "docs": "/docs",
        "agents": {agent.value: description for agent, description in AGENT_DESCRIPTIONS.items()},
    }
