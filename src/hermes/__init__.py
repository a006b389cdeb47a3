"""Hermes package exports."""

from .config import Settings, settings
from .domain import QueryOrchestrator
from .service import SearchService

__all__ = [
    "QueryOrchestrator",
    "SearchService",
    "Settings",
    "settings",
]
