"""Query Orchestrator - Multi-Step Tool-Using Loop for One Query.

Drives one query through the generative service, dispatching the tool calls
it asks for, until the model answers in plain text or the step budget runs
out. The final text is then handed to the OutputExtractor.

Round Loop:
    1. Lease a ToolSet from the ConnectionManager (empty when DEGRADED)
    2. Start the conversation: system prompt for the lease's mode, user query
    3. Per round (at most max_steps):
       - one generative step, response appended to the conversation
       - no tool calls → loop ends with this round's text
       - otherwise every call runs concurrently; the round waits for all of
         them and appends one tool-return message, results in request order
    4. Extract the final text against the target schema

Failure Absorption:
    - Tool call fails (unknown tool, bad arguments, provider error) → the
      model sees an error-shaped tool result and carries on
    - Tool transport dies → run aborts with TOOL_INVOCATION_FAILED
    - Generative step fails, or the deadline passes → GENERATIVE_SERVICE_FAILED
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Mapping

import structlog
from pydantic_ai.messages import ModelRequest, ToolReturnPart

from .connection import ConnectionManager
from .domain_type import ConnectionMode, ErrorKind, ErrorSource
from .domain_value import Completion, ConversationState, Query, RoundSummary, RunReport, TextDelta, ToolCallRequest
from .errors import (
    ExtractionFailure,
    GenerativeServiceError,
    HermesError,
    InvalidRequestError,
    ToolTransportError,
    classify,
    describe,
    is_transport_failure,
)
from .extractor import OutputExtractor, default_extractor
from .generative import GenerativeService
from .schema import SchemaNode, to_json_schema
from .tool_provider import ToolHint, ToolOutput, ToolSet

logger = structlog.get_logger(__name__)

DEFAULT_MAX_STEPS = 5

TOOL_SYSTEM_PROMPT = (
    "You are a helpful search assistant powered by the Hermes search engine. "
    "Use the available MCP tools when possible to search for information and provide comprehensive answers."
)
KNOWLEDGE_SYSTEM_PROMPT = "You are a helpful assistant. Answer questions using your knowledge base."
STRUCTURED_OUTPUT_PROMPT = (
    "You must respond with valid JSON that matches the provided schema. "
    "Reply with a single JSON object and nothing else.\n\nJSON Schema:\n{schema}"
)


def build_system_prompt(mode: ConnectionMode, schema: SchemaNode | None = None, location_hint: str | None = None) -> str:
    """System message for a run: mode-specific preamble, location, output contract."""
    sections = [TOOL_SYSTEM_PROMPT if mode == ConnectionMode.CONNECTED else KNOWLEDGE_SYSTEM_PROMPT]
    if location_hint:
        sections.append(location_hint)
    if schema is not None:
        sections.append(STRUCTURED_OUTPUT_PROMPT.format(schema=json.dumps(to_json_schema(schema), indent=2)))
    return "\n\n".join(sections)


class QueryOrchestrator:
    """Runs queries through the tool-using model loop.

    Holds no per-run state: every run builds its own conversation and lease,
    so one orchestrator serves any number of concurrent runs.

    Args:
        connections: Source of ToolSet leases
        service: Generative service performing single model steps
        extractor: Output extractor (defaults to the Hermes registry)
        max_steps: Default round budget per run
        deadline: Default per-run deadline in seconds (None = no deadline)

    Example:
        >>> orchestrator = QueryOrchestrator(manager, PydanticAIService.openai(...))
        >>> report = await orchestrator.run("coffee near me", AGENTIC_SEARCH_SCHEMA)
        >>> report.unwrap()["message"]
    """

    def __init__(
        self,
        connections: ConnectionManager,
        service: GenerativeService,
        extractor: OutputExtractor | None = None,
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
        deadline: float | None = None,
    ):
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.connections = connections
        self.service = service
        self.extractor = extractor or default_extractor()
        self.max_steps = max_steps
        self.deadline = deadline

    async def run(
        self,
        query: Query | str,
        schema: SchemaNode | str,
        *,
        max_steps: int | None = None,
        deadline: float | None = None,
        typed_hints: Mapping[str, ToolHint] | None = None,
    ) -> RunReport:
        """Answer ``query`` as a value conforming to ``schema``.

        Failures come back as an ExtractionFailure inside the report; use
        ``report.unwrap()`` to raise instead.

        Args:
            query: Query or bare query text
            schema: Target schema, or the name of a registered one
            max_steps: Round budget for this run (defaults to the orchestrator's)
            deadline: Seconds before the run is cancelled (defaults to the orchestrator's)
            typed_hints: Tool name → ToolHint; restricts and types the ToolSet
        """
        query = _as_query(query)
        steps = max_steps if max_steps is not None else self.max_steps
        limit = deadline if deadline is not None else self.deadline
        rounds: list[RoundSummary] = []

        try:
            target = self._validate_request(query, schema, steps)
        except InvalidRequestError as exc:
            logger.warning("invalid_request", error=exc.message)
            return RunReport(result=ExtractionFailure.from_error(ErrorSource.REQUEST, exc))

        try:
            async with asyncio.timeout(limit):
                text = await self._loop(query, target, steps, typed_hints, rounds)
        except TimeoutError:
            logger.warning("run_deadline_exceeded", deadline=limit, rounds=len(rounds))
            failure = ExtractionFailure(
                kind=ErrorKind.GENERATIVE_SERVICE_FAILED,
                message=f"Run exceeded its deadline of {limit}s",
            )
            return RunReport(result=failure, rounds=tuple(rounds))
        except HermesError as exc:
            logger.warning("run_failed", kind=exc.kind, error=exc.message, rounds=len(rounds))
            failure = ExtractionFailure.from_error(ErrorSource.GENERATIVE_SERVICE, exc)
            return RunReport(result=failure, rounds=tuple(rounds))

        return RunReport(result=self.extractor.extract(text, target), rounds=tuple(rounds))

    async def stream(
        self,
        query: Query | str,
        *,
        max_steps: int | None = None,
        typed_hints: Mapping[str, ToolHint] | None = None,
    ) -> AsyncIterator[TextDelta | RoundSummary]:
        """Free-form answer as it is generated.

        Yields TextDelta events while the model writes and one RoundSummary at
        the end of every round. The lease is released when the stream ends.

        Raises:
            InvalidRequestError: Blank query
            GenerativeServiceError: A model step failed
            ToolTransportError: The tool transport died mid-run
        """
        query = _as_query(query)
        if query.is_blank:
            raise InvalidRequestError("Query text cannot be blank")
        steps = max_steps if max_steps is not None else self.max_steps
        if steps < 1:
            raise InvalidRequestError("max_steps must be at least 1")

        async with self.connections.lease(typed_hints) as tools:
            conversation = ConversationState.start(
                build_system_prompt(tools.mode, location_hint=query.location_hint), query.text
            )
            for index in range(1, steps + 1):
                completion: Completion | None = None
                try:
                    async for item in self.service.stream(conversation, tools):
                        if isinstance(item, Completion):
                            completion = item
                        elif item:
                            yield TextDelta(content=item, round_index=index)
                except HermesError:
                    raise
                except Exception as exc:
                    raise GenerativeServiceError(f"Model stream failed: {describe(exc)}") from exc
                if completion is None:
                    raise GenerativeServiceError("Model stream ended without a response")

                conversation, summary = await self._advance(conversation, completion, tools, index)
                yield summary
                if summary.final:
                    return
            logger.warning("step_budget_exhausted", max_steps=steps)

    def _validate_request(self, query: Query, schema: SchemaNode | str, steps: int) -> SchemaNode:
        if query.is_blank:
            raise InvalidRequestError("Query text cannot be blank")
        if steps < 1:
            raise InvalidRequestError("max_steps must be at least 1")
        try:
            return self.extractor.registry.resolve(schema)
        except KeyError as exc:
            raise InvalidRequestError(f"Unknown schema: {schema}") from exc

    async def _loop(
        self,
        query: Query,
        schema: SchemaNode,
        steps: int,
        typed_hints: Mapping[str, ToolHint] | None,
        rounds: list[RoundSummary],
    ) -> str:
        async with self.connections.lease(typed_hints) as tools:
            conversation = ConversationState.start(
                build_system_prompt(tools.mode, schema, query.location_hint), query.text
            )
            answer = ""
            for index in range(1, steps + 1):
                completion = await self._complete(conversation, tools)
                conversation, summary = await self._advance(conversation, completion, tools, index)
                rounds.append(summary)
                if completion.text.strip():
                    answer = completion.text
                if summary.final:
                    return answer
            logger.warning("step_budget_exhausted", max_steps=steps, answered=bool(answer))
            return answer

    async def _complete(self, conversation: ConversationState, tools: ToolSet) -> Completion:
        try:
            return await self.service.complete(conversation, tools)
        except HermesError:
            raise
        except Exception as exc:
            raise GenerativeServiceError(f"Model request failed: {describe(exc)}") from exc

    async def _advance(
        self,
        conversation: ConversationState,
        completion: Completion,
        tools: ToolSet,
        index: int,
    ) -> tuple[ConversationState, RoundSummary]:
        """Append the model's response and, if it asked for tools, their results."""
        conversation = conversation.append(completion.response)
        calls = completion.tool_calls
        outputs = await self._dispatch(tools, calls) if calls else []
        if outputs:
            conversation = conversation.append(
                ModelRequest(
                    parts=[
                        ToolReturnPart(tool_name=call.tool_name, content=output.content, tool_call_id=call.tool_call_id)
                        for call, output in zip(calls, outputs, strict=True)
                    ]
                )
            )

        summary = RoundSummary(
            index=index,
            tool_calls_requested=len(calls),
            tool_names=tuple(call.tool_name for call in calls),
            failed_tool_calls=sum(output.is_error for output in outputs),
            text=completion.text,
            final=not calls,
        )
        logger.info(
            "round_finished",
            round=index,
            tool_calls=summary.tool_calls_requested,
            tools=list(summary.tool_names),
            failed=summary.failed_tool_calls,
            final=summary.final,
        )
        return conversation, summary

    async def _dispatch(self, tools: ToolSet, calls: tuple[ToolCallRequest, ...]) -> list[ToolOutput]:
        """Run every call of a round concurrently and wait for all of them.

        Raises:
            ToolTransportError: At least one call found the transport dead
        """
        results = await asyncio.gather(*(self._invoke(tools, call) for call in calls), return_exceptions=True)
        outputs: list[ToolOutput] = []
        for result in results:
            if isinstance(result, ToolOutput):
                outputs.append(result)
            elif isinstance(result, Exception):
                raise ToolTransportError(f"Tool transport failed: {describe(result)}") from result
            else:
                raise result
        return outputs

    async def _invoke(self, tools: ToolSet, call: ToolCallRequest) -> ToolOutput:
        try:
            return await tools.invoke(call.tool_name, call.args)
        except Exception as exc:
            if is_transport_failure(exc):
                raise
            logger.warning(
                "tool_call_failed",
                tool=call.tool_name,
                kind=classify(ErrorSource.TOOL_PROVIDER, exc),
                error=describe(exc),
            )
            return ToolOutput.failure(describe(exc))


def _as_query(query: Query | str) -> Query:
    return query if isinstance(query, Query) else Query(text=query)


__all__ = [
    "DEFAULT_MAX_STEPS",
    "KNOWLEDGE_SYSTEM_PROMPT",
    "QueryOrchestrator",
    "STRUCTURED_OUTPUT_PROMPT",
    "TOOL_SYSTEM_PROMPT",
    "build_system_prompt",
]
