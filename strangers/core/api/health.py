"""
Health and status endpoints.

/health is a plain liveness check; /api/status reports live relay state and counters.
"""
from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str


class RelayStatusResponse(BaseModel):
    """Relay status response."""
    connections: int
    profiles: int
    waiting: Dict[str, int]
    paired: int
    metrics: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/api/status", response_model=RelayStatusResponse)
def get_relay_status(request: Request) -> RelayStatusResponse:
    """
    Current connection count, waiting pool sizes and pairing count.

    Counts only; connection ids and profiles are never exposed.
    """
    broker = request.app.state.broker
    return RelayStatusResponse(**broker.status())
