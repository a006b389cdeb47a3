"""Thin search service - caller policy on top of the orchestrator."""

from __future__ import annotations

from typing import Any

import structlog

from ..config import Settings
from ..domain.connection import ConnectionManager
from ..domain.domain_type import ConnectionMode
from ..domain.domain_value import Query, RunReport
from ..domain.generative import PydanticAIService
from ..domain.orchestrator import QueryOrchestrator
from ..domain.schema import SchemaNode
from ..domain.search_schema import AGENTIC_SEARCH_SCHEMA, LEGACY_SEARCH_SCHEMA, legacy_empty_response
from ..domain.tool_provider import ToolHint

logger = structlog.get_logger(__name__)


class SearchService:
    """
    Search orchestration service - no business logic of its own.

    Service responsibilities:
    1. Pick the response schema from the query's legacy flag
    2. Delegate the run to QueryOrchestrator
    3. Mask failed legacy searches with the empty legacy payload
    4. Expose tool listing and connection mode for the API

    The orchestrator returns classified failures; deciding which ones the
    caller gets to see is this service's job.
    """

    def __init__(self, orchestrator: QueryOrchestrator, connections: ConnectionManager):
        self.orchestrator = orchestrator
        self.connections = connections

    async def search(self, query: Query) -> Any:
        """
        Answer a search query with the schema its legacy flag selects.

        Returns:
            Validated agentic or legacy payload

        Raises:
            HermesError: Agentic search failed (legacy failures are masked)
        """
        schema = LEGACY_SEARCH_SCHEMA if query.legacy_format else AGENTIC_SEARCH_SCHEMA
        report = await self.orchestrator.run(query, schema)

        if not report.ok and query.legacy_format:
            logger.warning(
                "legacy_search_masked_failure",
                kind=report.result.kind,
                reason=report.result.message,
                rounds=len(report.rounds),
            )
            return legacy_empty_response()
        return report.unwrap()

    async def search_with_schema(
        self,
        query: Query | str,
        schema: SchemaNode | str,
        typed_hints: dict[str, ToolHint] | None = None,
    ) -> RunReport:
        """Run against any schema; no masking, the report is returned as-is."""
        return await self.orchestrator.run(query, schema, typed_hints=typed_hints)

    async def list_tools(self) -> tuple[str, ...]:
        return await self.connections.list_tool_names()

    def mode(self) -> ConnectionMode:
        return self.connections.current_mode()


def create_connection_manager(settings: Settings) -> ConnectionManager:
    return ConnectionManager(settings.hermes_mcp_url, connect_timeout=settings.hermes_connect_timeout)


def create_search_service(settings: Settings, connections: ConnectionManager) -> SearchService:
    """
    Factory function for creating SearchService.

    Service owns its own construction logic - deps.py just calls this.

    Args:
        settings: Application settings (model, API key, step budget, deadline)
        connections: Shared connection manager (connected by the app lifespan)

    Returns:
        Configured SearchService ready for use
    """
    service = PydanticAIService.openai(settings.hermes_model, api_key=settings.openai_api_key)
    orchestrator = QueryOrchestrator(
        connections,
        service,
        max_steps=settings.hermes_max_steps,
        deadline=settings.hermes_run_timeout,
    )
    return SearchService(orchestrator=orchestrator, connections=connections)


__all__ = ["SearchService", "create_connection_manager", "create_search_service"]
