"""Tool Provider - Remote Tools Offered to the Model.

Defines the ToolProvider capability and its MCP implementation. A provider
lists its tools as a ToolSet and executes calls by name; the orchestrator only
ever sees the ToolSet, never the MCP session.

Architecture:
    ToolProvider (Protocol): list_tools(typed_hints) → ToolSet, invoke(), close()
    ├─ ToolDescriptor: name, description, parameter JSON Schema
    ├─ ToolHint: caller-supplied parameter schema overriding the advertised one
    ├─ ToolSet: read-only name → descriptor map bound to the provider that listed it
    └─ McpToolProvider: MCP session over streamable HTTP

Session Ownership:
    The MCP client and session are async context managers whose cancel scopes
    must be exited by the task that entered them. McpToolProvider therefore
    keeps them inside one dedicated holder task; close() signals that task and
    waits for it, so any task may close the provider.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import structlog
from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic_ai.tools import ToolDefinition

from .domain_type import ConnectionMode
from .errors import ToolInvocationError, describe
from .schema import Invalid, ObjectSchema, to_json_schema, validate

logger = structlog.get_logger(__name__)

EMPTY_PARAMETERS: dict[str, Any] = {"type": "object", "properties": {}}


class ToolDescriptor(BaseModel):
    """Callable tool as advertised to the model.

    Attributes:
        name: Unique tool name within a ToolSet
        description: Model-facing description (the model reads this!)
        parameters_json_schema: JSON Schema of the call arguments
        hint: Typed parameter schema; when set, arguments are validated before invocation
    """

    name: str = Field(min_length=1)
    description: str = ""
    parameters_json_schema: dict[str, Any] = Field(default_factory=lambda: dict(EMPTY_PARAMETERS))
    hint: ObjectSchema | None = None

    model_config = ConfigDict(frozen=True)

    def to_tool_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters_json_schema=self.parameters_json_schema,
        )


class ToolHint(BaseModel):
    """Typed parameter schema for one tool.

    Example:
        >>> ToolHint(parameters=ObjectSchema(fields=(
        ...     required("query", StringSchema(), "The search query"),
        ...     optional("limit", NumberSchema(integer=True, minimum=1)),
        ... )))
    """

    parameters: ObjectSchema
    description: str | None = None

    model_config = ConfigDict(frozen=True)


class ToolOutput(BaseModel):
    """Text returned to the model for one tool call."""

    content: str
    is_error: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def failure(cls, message: str) -> ToolOutput:
        """Error-shaped result the model can read and recover from."""
        return cls(content=json.dumps({"error": message}), is_error=True)


@runtime_checkable
class ToolProvider(Protocol):
    """Capability interface to a remote tool provider."""

    async def list_tools(self, typed_hints: Mapping[str, ToolHint] | None = None) -> ToolSet: ...

    async def invoke(self, name: str, args: dict[str, Any]) -> ToolOutput: ...

    async def close(self) -> None: ...


class ToolSet(BaseModel):
    """Tools available to one orchestration run.

    Produced at the start of a run and discarded at its end. A ToolSet
    produced while the connection is DEGRADED is always empty.

    Attributes:
        tools: Descriptors keyed by tool name
        mode: Connection mode of the snapshot this ToolSet was taken from
    """

    tools: dict[str, ToolDescriptor] = Field(default_factory=dict)
    mode: ConnectionMode = ConnectionMode.DEGRADED
    _provider: ToolProvider | None = PrivateAttr(default=None)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def empty(cls, mode: ConnectionMode = ConnectionMode.DEGRADED) -> ToolSet:
        return cls(mode=mode)

    @classmethod
    def from_descriptors(
        cls,
        descriptors: list[ToolDescriptor],
        provider: ToolProvider,
        typed_hints: Mapping[str, ToolHint] | None = None,
    ) -> ToolSet:
        """Build a connected ToolSet, applying typed hints when given.

        With hints, only hinted tools are kept and their advertised parameter
        schema is replaced by the hint's rendering. Hints naming tools the
        provider does not offer are ignored.
        """
        tools: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in tools:
                logger.warning("duplicate_tool_ignored", tool=descriptor.name)
                continue
            if typed_hints is None:
                tools[descriptor.name] = descriptor
                continue
            hint = typed_hints.get(descriptor.name)
            if hint is None:
                continue
            tools[descriptor.name] = descriptor.model_copy(
                update={
                    "parameters_json_schema": to_json_schema(hint.parameters),
                    "description": hint.description or descriptor.description,
                    "hint": hint.parameters,
                }
            )
        toolset = cls(tools=tools, mode=ConnectionMode.CONNECTED)
        toolset._provider = provider
        return toolset

    def __len__(self) -> int:
        return len(self.tools)

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def names(self) -> tuple[str, ...]:
        return tuple(self.tools)

    def definitions(self) -> list[ToolDefinition]:
        return [descriptor.to_tool_definition() for descriptor in self.tools.values()]

    async def invoke(self, name: str, args: dict[str, Any]) -> ToolOutput:
        """Execute one call through the provider that listed this ToolSet.

        Raises:
            ToolInvocationError: Unknown tool, or arguments violate the typed hint
            Exception: Whatever the provider raises (transport errors included)
        """
        descriptor = self.tools.get(name)
        if descriptor is None or self._provider is None:
            raise ToolInvocationError(f"Unknown tool: {name}")
        if descriptor.hint is not None:
            result = validate(args, descriptor.hint)
            if isinstance(result, Invalid):
                raise ToolInvocationError(f"Invalid arguments for tool '{name}': {result.violation}")
        return await self._provider.invoke(name, args)


class McpToolProvider:
    """ToolProvider backed by an MCP session over streamable HTTP.

    Use the ``connect`` factory; the constructor does not open anything.

    Example:
        >>> provider = await McpToolProvider.connect("http://localhost:8080/mcp")
        >>> tools = await provider.list_tools()
        >>> output = await provider.invoke("listBrands", {})
        >>> await provider.close()
    """

    def __init__(self, endpoint_url: str, *, call_timeout: float | None = None):
        self.endpoint_url = endpoint_url
        self.call_timeout = call_timeout
        self._session: Any = None
        self._closing = asyncio.Event()
        self._holder: asyncio.Task[None] | None = None

    @classmethod
    async def connect(
        cls,
        endpoint_url: str,
        *,
        timeout: float = 10.0,
        call_timeout: float | None = None,
    ) -> McpToolProvider:
        """Open the transport, run the MCP handshake, return a live provider.

        Raises:
            Exception: Any transport, handshake or URL error, or TimeoutError
                when the handshake does not finish within ``timeout`` seconds
        """
        provider = cls(endpoint_url, call_timeout=call_timeout)
        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        provider._holder = asyncio.create_task(provider._hold(ready, timeout))
        try:
            await asyncio.wait_for(ready, timeout=timeout)
        except BaseException:
            await provider.close()
            raise
        return provider

    async def _hold(self, ready: asyncio.Future[None], timeout: float) -> None:
        """Own the client and session contexts until close() is requested."""
        try:
            async with streamablehttp_client(self.endpoint_url, timeout=timeout) as (read_stream, write_stream, _):
                async with ClientSession(read_stream, write_stream) as session:
                    await session.initialize()
                    self._session = session
                    if not ready.done():
                        ready.set_result(None)
                    await self._closing.wait()
        except Exception as exc:
            if not ready.done():
                ready.set_exception(exc)
            else:
                logger.warning("mcp_session_ended", endpoint=self.endpoint_url, error=describe(exc))
        finally:
            self._session = None
            if not ready.done():
                ready.cancel()

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._closing.is_set()

    def _require_session(self) -> Any:
        if not self.is_open:
            raise ConnectionError(f"MCP session to {self.endpoint_url} is closed")
        return self._session

    async def list_tools(self, typed_hints: Mapping[str, ToolHint] | None = None) -> ToolSet:
        session = self._require_session()
        result = await session.list_tools()
        descriptors = [
            ToolDescriptor(
                name=tool.name,
                description=tool.description or "",
                parameters_json_schema=tool.inputSchema or dict(EMPTY_PARAMETERS),
            )
            for tool in result.tools
        ]
        return ToolSet.from_descriptors(descriptors, self, typed_hints)

    async def invoke(self, name: str, args: dict[str, Any]) -> ToolOutput:
        """Call one MCP tool and flatten its content blocks to text.

        Raises:
            ToolInvocationError: The server rejected the call or it timed out
            Exception: Transport failures propagate unchanged
        """
        session = self._require_session()
        try:
            result = await asyncio.wait_for(session.call_tool(name, arguments=args), timeout=self.call_timeout)
        except McpError as exc:
            raise ToolInvocationError(f"Tool '{name}' failed: {describe(exc)}") from exc
        except TimeoutError as exc:
            raise ToolInvocationError(f"Tool '{name}' timed out after {self.call_timeout}s") from exc

        parts: list[str] = []
        for item in result.content or []:
            text = getattr(item, "text", None)
            parts.append(text if isinstance(text, str) else item.model_dump_json())
        if not parts and result.structuredContent is not None:
            parts.append(json.dumps(result.structuredContent))
        content = "\n".join(parts)

        if result.isError:
            return ToolOutput.failure(content or f"Tool '{name}' reported an error")
        return ToolOutput(content=content)

    async def close(self) -> None:
        """Signal the holder task to leave its contexts and wait for it.

        A holder still stuck in the handshake is cancelled instead.
        """
        self._closing.set()
        if self._holder is None:
            return
        holder, self._holder = self._holder, None
        if self._session is None:
            holder.cancel()
        await asyncio.wait([holder])


__all__ = [
    "EMPTY_PARAMETERS",
    "McpToolProvider",
    "ToolDescriptor",
    "ToolHint",
    "ToolOutput",
    "ToolProvider",
    "ToolSet",
]
