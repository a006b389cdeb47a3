"""Health check router

Endpoints:
- GET /health: Liveness of the HTTP layer

The check does not touch the tool provider: a DEGRADED Hermes still answers
searches, so it is still healthy. Use GET /search/tools to see the mode.
"""

from fastapi import APIRouter

from ...api.contracts import HealthResponse

SERVICE_NAME = "hermes-search"

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """API health check"""
    return HealthResponse(status="healthy", service=SERVICE_NAME)
