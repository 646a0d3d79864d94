"""Health check endpoint for monitoring and load balancers."""
from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str


@router.get("/health", response_model=HealthResponse)
def healthcheck(request: Request) -> HealthResponse:
    return HealthResponse(
        status="UP",
        timestamp=datetime.now(tz=UTC).isoformat(),
        environment=request.app.state.settings.ENVIRONMENT,
    )
