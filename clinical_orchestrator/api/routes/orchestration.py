"""Orchestration endpoints for the clinical orchestrator API."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...core import ClinicalAgent, ConversationMessage
from ...orchestrator import (
    HealthStatus,
    OrchestrationMode,
    OrchestrationSystem,
    create_orchestration_system,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["orchestration"])

# Global system instance (lazy initialization for better startup)
_system: Optional[OrchestrationSystem] = None


def get_orchestration_system() -> OrchestrationSystem:
    """Get or create the global orchestration system.

    Returns:
        OrchestrationSystem: The singleton system instance.
    """
    global _system
    if _system is None:
        _system = create_orchestration_system()
        logger.info("Orchestration system initialized")
    return _system


def set_orchestration_system(system: OrchestrationSystem) -> None:
    """Install a pre-built system (used by the server lifespan and tests)."""
    global _system
    _system = system


def reset_orchestration_system() -> None:
    """Reset the global system instance (useful for testing)."""
    global _system
    _system = None


class HistoryMessage(BaseModel):
    """A transcript message supplied by the client."""

    role: str
    text: str
    timestamp: Optional[datetime] = None


class OrchestrateRequest(BaseModel):
    """Request model for one orchestrated turn."""

    user_input: str
    session_id: Optional[str] = None
    user_id: str = "anonymous"
    force_mode: Optional[OrchestrationMode] = None
    previous_agent: Optional[ClinicalAgent] = None
    session_files: Optional[List[str]] = None
    session_history: Optional[List[HistoryMessage]] = None


class RecommendationsModel(BaseModel):
    suggested_follow_up: str
    alternative_approaches: List[str]
    clinical_considerations: List[str]


class OrchestrateResponse(BaseModel):
    """Response model for one orchestrated turn."""

    success: bool
    session_id: str
    selected_agent: str
    tools: List[str]
    contextual_tools: List[Dict[str, Any]]
    confidence: float
    reasoning: str
    orchestration_type: str
    detected_intent: Optional[str] = None
    dominant_topics: List[str] = []
    session_length: int = 0
    recommendations: Optional[RecommendationsModel] = None
    error: Optional[str] = None
    metadata: Optional[dict] = None


class ToolInfo(BaseModel):
    """Information about a registered tool."""

    id: str
    name: str
    category: str
    priority: int
    domains: List[str]
    keywords: List[str]


class ToolsListResponse(BaseModel):
    tools: List[ToolInfo]
    count: int


def _to_messages(history: Optional[List[HistoryMessage]]) -> Optional[List[ConversationMessage]]:
    if history is None:
        return None
    return [
        ConversationMessage(role=m.role, text=m.text, timestamp=m.timestamp or datetime.now())
        for m in history
    ]


@router.post("/orchestrate", response_model=OrchestrateResponse)
async def orchestrate(request: OrchestrateRequest) -> OrchestrateResponse:
    """
    Route a user message to an agent and select its tools.

    Args:
        request: The message plus optional session id, mode override,
                 previous agent, attachments and transcript.

    Returns:
        The orchestration decision, including the session_id to use for
        follow-up turns.
    """
    if not request.user_input or not request.user_input.strip():
        raise HTTPException(status_code=400, detail="user_input cannot be empty")

    session_id = request.session_id or str(uuid.uuid4())
    logger.info(f"Orchestrate request for session {session_id}: {request.user_input[:100]}")

    system = get_orchestration_system()
    result = await system.orchestrate(
        request.user_input,
        session_id,
        request.user_id,
        force_mode=request.force_mode,
        session_history=_to_messages(request.session_history),
        previous_agent=request.previous_agent,
        session_files=request.session_files,
    )

    data = result.to_dict()
    return OrchestrateResponse(
        success=data["success"],
        session_id=session_id,
        selected_agent=data["selected_agent"],
        tools=data["tool_names"],
        contextual_tools=data["contextual_tools"],
        confidence=data["confidence"],
        reasoning=data["reasoning"],
        orchestration_type=data["orchestration_type"],
        detected_intent=data["detected_intent"],
        dominant_topics=data["dominant_topics"],
        session_length=data["session_length"],
        recommendations=data["recommendations"],
        error=data["error"],
        metadata=data["metadata"],
    )


@router.get("/orchestration/health")
async def orchestration_health() -> JSONResponse:
    """
    Detailed component health.

    Returns:
        Health report; status code 503 when the system is unhealthy.
    """
    health = get_orchestration_system().get_health_status()
    status_code = 503 if health["status"] == HealthStatus.UNHEALTHY.value else 200
    return JSONResponse(content=health, status_code=status_code)


@router.get("/orchestration/metrics")
async def orchestration_metrics() -> dict:
    """Aggregate metrics from monitoring and the bridge."""
    system = get_orchestration_system()
    return {
        "monitoring": system.get_metrics().to_dict(),
        "bridge": system.bridge.get_performance_metrics(),
    }


@router.get("/orchestration/alerts")
async def orchestration_alerts() -> dict:
    alerts = get_orchestration_system().get_active_alerts()
    return {"alerts": [alert.to_dict() for alert in alerts], "count": len(alerts)}


@router.post("/orchestration/alerts/{alert_id}/resolve")
async def resolve_alert(alert_id: str) -> dict:
    if not get_orchestration_system().resolve_alert(alert_id):
        raise HTTPException(status_code=404, detail=f"Alert '{alert_id}' not found")
    return {"resolved": True, "alert_id": alert_id}


@router.get("/orchestration/reports")
async def orchestration_report(days: int = Query(7, ge=1, le=365)) -> dict:
    """
    Clinical analysis report for the trailing window.

    Args:
        days: Number of days to cover, ending now.
    """
    end = datetime.now()
    report = get_orchestration_system().generate_report(end - timedelta(days=days), end)
    return report.to_dict()


@router.post("/orchestration/cleanup")
async def orchestration_cleanup() -> dict:
    removed = get_orchestration_system().cleanup_expired_sessions()
    logger.info(f"Manual cleanup: {removed}")
    return removed


@router.get("/tools", response_model=ToolsListResponse)
async def list_tools() -> ToolsListResponse:
    """List the registered clinical tools."""
    tools = [
        ToolInfo(
            id=tool.id,
            name=tool.name,
            category=tool.category.value,
            priority=tool.priority,
            domains=[domain.value for domain in tool.applicable_domains],
            keywords=list(tool.context_keywords),
        )
        for tool in get_orchestration_system().registry.get_all()
    ]
    return ToolsListResponse(tools=tools, count=len(tools))
