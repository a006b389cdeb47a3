"""Hermes Search API

FastAPI application answering natural-language search queries with a
tool-using model, degrading to the model's own knowledge when the tool
provider is unreachable.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from .api.deps import get_connection_manager
from .api.routers import health_router, search_router
from .api.routers.search import error_response
from .config import settings
from .log import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - connect to the tool provider, disconnect on shutdown"""
    setup_logging()
    logger.info("starting", app=settings.app_name, version=settings.app_version, environment=settings.environment)
    connections = get_connection_manager()
    mode = await connections.connect()
    logger.info("ready", mode=mode)
    yield
    await connections.disconnect()
    logger.info("shutdown")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Natural-language search over an MCP tool provider",
    version=settings.app_version,
    debug=settings.environment == "development",
    lifespan=lifespan,
)

# Add CORS middleware
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

# Import and include routers
app.include_router(health_router)
app.include_router(search_router)


@app.exception_handler(RequestValidationError)
async def invalid_params_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query parameters use the same error envelope as a blank query"""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "query")
        message = f"'{location}' {first.get('msg', 'is invalid')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request parameters"
    return error_response(400, "invalid_params", message)


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return error_response(500, "internal_error", "Internal server error")


@app.get("/")
async def root() -> RedirectResponse:
    """Redirect root to API docs"""
    return RedirectResponse(url="/docs")
