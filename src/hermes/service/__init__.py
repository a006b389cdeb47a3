from .search import SearchService, create_connection_manager, create_search_service

__all__ = ["SearchService", "create_connection_manager", "create_search_service"]
