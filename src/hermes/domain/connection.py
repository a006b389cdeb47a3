"""Connection Manager - Tool Provider Lifecycle and Degraded Mode.

One ConnectionManager owns the session with the remote tool provider. Its
state is an explicit two-state machine:

    DEGRADED ──connect() ok──▶ CONNECTED
        ▲                          │
        └── connect() failed ──────┤
        └── disconnect() ──────────┤
        └── transport lost ────────┘

Mode and provider handle are replaced together under a lock (single writer)
and read as one snapshot tuple (many readers), so a reader never sees
CONNECTED without a handle or a handle left over from a previous session.

Leases:
    A run pins the handle it started with through ``lease()``. disconnect()
    clears the handle for new callers at once; the old handle is closed when
    its last lease is released.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from functools import partial

import structlog

from .domain_type import ConnectionMode, ErrorSource
from .errors import classify, describe, is_transport_failure
from .tool_provider import McpToolProvider, ToolHint, ToolProvider, ToolSet

logger = structlog.get_logger(__name__)

ProviderFactory = Callable[[str], Awaitable[ToolProvider]]


class _Handle:
    """Live provider plus the number of runs currently holding it."""

    __slots__ = ("provider", "leases", "retired", "closed")

    def __init__(self, provider: ToolProvider):
        self.provider = provider
        self.leases = 0
        self.retired = False
        self.closed = False


class ConnectionManager:
    """Owns the tool-provider session and the CONNECTED/DEGRADED mode.

    Args:
        endpoint_url: Tool provider endpoint (MCP streamable HTTP)
        provider_factory: Coroutine function opening a provider for a URL;
            defaults to McpToolProvider.connect
        connect_timeout: Handshake timeout for the default factory, in seconds

    Example:
        >>> manager = ConnectionManager("http://localhost:8080/mcp")
        >>> await manager.connect()
        <ConnectionMode.CONNECTED: 'connected'>
        >>> async with manager.lease() as tools:
        ...     tools.names()
        >>> await manager.disconnect()
    """

    def __init__(
        self,
        endpoint_url: str,
        *,
        provider_factory: ProviderFactory | None = None,
        connect_timeout: float = 10.0,
    ):
        self.endpoint_url = endpoint_url
        self._factory = provider_factory or partial(McpToolProvider.connect, timeout=connect_timeout)
        self._lock = asyncio.Lock()
        self._state: tuple[ConnectionMode, _Handle | None] = (ConnectionMode.DEGRADED, None)

    def current_mode(self) -> ConnectionMode:
        return self._state[0]

    @property
    def is_connected(self) -> bool:
        return self.current_mode() == ConnectionMode.CONNECTED

    async def connect(self) -> ConnectionMode:
        """Open a session with the tool provider; never raises.

        A previous handle is released first. Any failure (network, handshake,
        malformed URL, timeout) leaves the manager DEGRADED and is logged.

        Returns:
            The resulting mode
        """
        async with self._lock:
            _, previous = self._state
            self._state = (ConnectionMode.DEGRADED, None)
            if previous is not None:
                await self._retire(previous)

            logger.info("tool_provider_connecting", endpoint=self.endpoint_url)
            try:
                provider = await self._factory(self.endpoint_url)
            except Exception as exc:
                logger.warning(
                    "tool_provider_unavailable",
                    endpoint=self.endpoint_url,
                    kind=classify(ErrorSource.CONNECTION, exc),
                    error=describe(exc),
                )
                return ConnectionMode.DEGRADED

            self._state = (ConnectionMode.CONNECTED, _Handle(provider))
            logger.info("tool_provider_connected", endpoint=self.endpoint_url)
            return ConnectionMode.CONNECTED

    async def disconnect(self) -> None:
        """Drop the live handle, closing it once no run holds it. Idempotent."""
        async with self._lock:
            _, handle = self._state
            self._state = (ConnectionMode.DEGRADED, None)
        if handle is not None:
            await self._retire(handle)
            logger.info("tool_provider_disconnected", endpoint=self.endpoint_url)

    async def tools_or_empty(self, typed_hints: Mapping[str, ToolHint] | None = None) -> ToolSet:
        """Current ToolSet, or an empty one when DEGRADED; never raises."""
        mode, handle = self._state
        return await self._list(mode, handle, typed_hints)

    @asynccontextmanager
    async def lease(self, typed_hints: Mapping[str, ToolHint] | None = None) -> AsyncIterator[ToolSet]:
        """Pin the current handle for one run and yield its ToolSet.

        The handle stays open until the block exits, whichever way it exits,
        even if disconnect() runs meanwhile.
        """
        mode, handle = self._state
        if handle is not None:
            handle.leases += 1
        try:
            yield await self._list(mode, handle, typed_hints)
        finally:
            if handle is not None:
                handle.leases -= 1
                if handle.retired and handle.leases == 0:
                    await asyncio.shield(self._close(handle))

    async def list_tool_names(self) -> tuple[str, ...]:
        """Names the provider currently advertises (empty when DEGRADED)."""
        return (await self.tools_or_empty()).names()

    async def _list(
        self,
        mode: ConnectionMode,
        handle: _Handle | None,
        typed_hints: Mapping[str, ToolHint] | None,
    ) -> ToolSet:
        if mode != ConnectionMode.CONNECTED or handle is None:
            return ToolSet.empty()
        try:
            tools = await handle.provider.list_tools(typed_hints)
        except Exception as exc:
            if is_transport_failure(exc):
                await self._drop(handle, exc)
                return ToolSet.empty()
            logger.warning("tool_listing_failed", endpoint=self.endpoint_url, error=describe(exc))
            return ToolSet.empty(ConnectionMode.CONNECTED)
        logger.debug("tools_listed", count=len(tools), tools=list(tools.names()))
        return tools

    async def _drop(self, handle: _Handle, error: Exception) -> None:
        """Fall back to DEGRADED after ``handle``'s transport died."""
        async with self._lock:
            if self._state[1] is not handle:
                return
            self._state = (ConnectionMode.DEGRADED, None)
        logger.warning("tool_provider_lost", endpoint=self.endpoint_url, error=describe(error))
        await self._retire(handle)

    async def _retire(self, handle: _Handle) -> None:
        handle.retired = True
        if handle.leases == 0:
            await self._close(handle)

    async def _close(self, handle: _Handle) -> None:
        if handle.closed:
            return
        handle.closed = True
        try:
            await handle.provider.close()
        except Exception as exc:
            logger.warning("tool_provider_close_failed", endpoint=self.endpoint_url, error=describe(exc))


__all__ = ["ConnectionManager", "ProviderFactory"]
