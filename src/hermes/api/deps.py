"""API dependency wiring: one connection manager, one search service."""

from functools import lru_cache

from ..config import settings
from ..domain.connection import ConnectionManager
from ..service import SearchService, create_connection_manager, create_search_service


@lru_cache(maxsize=1)
def get_connection_manager() -> ConnectionManager:
    """Shared tool-provider connection (cached singleton; the lifespan connects it)."""
    return create_connection_manager(settings)


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    """
    Create search service over the shared connection (cached singleton).

    Service factory handles all construction logic - deps.py is just thin DI glue.
    """
    return create_search_service(settings, get_connection_manager())
