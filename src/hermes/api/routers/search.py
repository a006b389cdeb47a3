"""Search API Router - thin HTTP layer over SearchService."""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ...domain import domain_value
from ...domain.errors import HermesError
from ...service import SearchService
from ..contracts import ErrorResponse, ToolsResponse
from ..deps import get_search_service

logger = structlog.get_logger(__name__)

BLANK_QUERY_MESSAGE = "'q' value cannot be blank"

router = APIRouter(prefix="/search", tags=["search"])


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse.of(code, message).model_dump())


@router.get(
    "",
    response_model=None,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def search(
    service: Annotated[SearchService, Depends(get_search_service)],
    q: Annotated[str | None, Query(description="Natural-language search query")] = None,
    latitude: Annotated[float | None, Query(ge=-90, le=90)] = None,
    longitude: Annotated[float | None, Query(ge=-180, le=180)] = None,
    legacy: Annotated[bool, Query(description="Return the structured legacy shape")] = False,
) -> Any:
    """
    Answer a natural-language query.

    Thin orchestration layer:
    1. Reject a missing or blank query (400 invalid_params)
    2. Delegate to SearchService (which masks failed legacy searches)
    3. Map unmasked failures to 500 internal_error
    """
    if q is None or not q.strip():
        return error_response(400, "invalid_params", BLANK_QUERY_MESSAGE)

    query = domain_value.Query(text=q, latitude=latitude, longitude=longitude, legacy_format=legacy)
    try:
        return await service.search(query)
    except HermesError as exc:
        logger.error("search_failed", kind=exc.kind, error=exc.message)
        return error_response(500, "internal_error", exc.message)


@router.get("/tools", response_model=ToolsResponse)
async def list_tools(
    service: Annotated[SearchService, Depends(get_search_service)],
) -> ToolsResponse:
    """List tools the provider advertises, with the current connection mode."""
    return ToolsResponse(mode=service.mode(), tools=list(await service.list_tools()))
