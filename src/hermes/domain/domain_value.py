"""Value Layer - Per-Run Data Carried Through the Orchestration Loop.

This module provides the immutable values one orchestration run creates and
consumes. Message content reuses Pydantic AI's types directly so the
conversation can be handed to a model without translation.

Architecture:
    - Input (caller): Query
    - Conversation (Pydantic AI content): ConversationState of ModelMessage
    - Model output (one step): Completion with its ToolCallRequests
    - Observability (returned, not called back): TextDelta, RoundSummary
    - Output (caller): RunReport wrapping the ExtractionResult
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    UserPromptPart,
)

from .errors import ExtractionResult, GenerativeServiceError


class Query(BaseModel):
    """Natural-language Search Request.

    Created per call and owned by the caller for the duration of one run.

    Attributes:
        text: The user's question, passed to the model verbatim
        latitude: Optional positional hint in degrees
        longitude: Optional positional hint in degrees
        legacy_format: Ask for the structured legacy response shape

    Note:
        Blank text is representable on purpose: the orchestrator rejects it as
        INVALID_REQUEST so the failure is classified instead of raised here.
    """

    text: str
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    legacy_format: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    @property
    def location_hint(self) -> str | None:
        """Sentence describing the user's position, when both hints are set."""
        if self.latitude is None or self.longitude is None:
            return None
        return f"The user is located at latitude {self.latitude}, longitude {self.longitude}."


class ConversationState(BaseModel):
    """Ordered Messages of One Orchestration Run.

    Order is exactly as constructed: system request first, user request
    second, then alternating model responses and tool-return requests. The
    model is sensitive to this order, so the state only ever grows at the end.

    Design Notes:
        - Immutable (frozen=True); append() returns a new instance
        - Uses tuple instead of list to enforce immutability
        - Lives for one run() call only, never shared across runs
    """

    messages: tuple[ModelMessage, ...] = ()

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @classmethod
    def start(cls, system_prompt: str, user_text: str) -> ConversationState:
        """Factory: system message, then the user's query."""
        return cls(
            messages=(
                ModelRequest(parts=[SystemPromptPart(content=system_prompt)]),
                ModelRequest(parts=[UserPromptPart(content=user_text)]),
            )
        )

    def append(self, message: ModelMessage) -> ConversationState:
        return self.model_copy(update={"messages": (*self.messages, message)})

    @property
    def message_list(self) -> list[ModelMessage]:
        """Mutable copy in the shape Pydantic AI's model API expects."""
        return list(self.messages)


class ToolCallRequest(BaseModel):
    """One tool call the model asked for."""

    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    tool_call_id: str

    model_config = ConfigDict(frozen=True)


class Completion(BaseModel):
    """Result of a single generative-service step.

    Attributes:
        response: Pydantic AI response, appended to the conversation as-is
        text: Concatenated text parts (empty when the model only called tools)
        tool_calls: Tool calls requested in this step, in model order
    """

    response: ModelResponse
    text: str = ""
    tool_calls: tuple[ToolCallRequest, ...] = ()

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @classmethod
    def from_response(cls, response: ModelResponse) -> Completion:
        """Split a ModelResponse into text and tool calls.

        Raises:
            GenerativeServiceError: A tool call carries arguments that are not
                a JSON object (a malformed tool-call request)
        """
        texts: list[str] = []
        calls: list[ToolCallRequest] = []
        for part in response.parts:
            if isinstance(part, TextPart):
                texts.append(part.content)
            elif isinstance(part, ToolCallPart):
                try:
                    args = part.args_as_dict()
                except (ValueError, AssertionError) as exc:
                    raise GenerativeServiceError(
                        f"Malformed arguments for tool call '{part.tool_name}': {exc}",
                        raw=str(part.args),
                    ) from exc
                calls.append(ToolCallRequest(tool_name=part.tool_name, args=args, tool_call_id=part.tool_call_id))
        return cls(response=response, text="".join(texts), tool_calls=tuple(calls))


class TextDelta(BaseModel):
    """Incremental text emitted while streaming a round."""

    content: str
    round_index: int = Field(ge=1)

    model_config = ConfigDict(frozen=True)


class RoundSummary(BaseModel):
    """What happened in one round of the orchestration loop.

    Returned to the caller instead of being reported through step callbacks.

    Attributes:
        index: 1-based round number
        tool_calls_requested: How many tool calls the model asked for
        tool_names: Names of the requested tools, in request order
        failed_tool_calls: Calls whose result was an error message
        text: Text the model produced in this round
        final: True when this round ended the loop with an answer
    """

    index: int = Field(ge=1)
    tool_calls_requested: int = Field(default=0, ge=0)
    tool_names: tuple[str, ...] = ()
    failed_tool_calls: int = Field(default=0, ge=0)
    text: str = ""
    final: bool = False

    model_config = ConfigDict(frozen=True)


class RunReport(BaseModel):
    """Outcome of QueryOrchestrator.run(): the result plus per-round summaries."""

    result: ExtractionResult
    rounds: tuple[RoundSummary, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return self.result.ok

    @property
    def total_tool_calls(self) -> int:
        return sum(r.tool_calls_requested for r in self.rounds)

    def unwrap(self) -> Any:
        """Validated value, or raise the failure's HermesError."""
        return self.result.unwrap()


__all__ = [
    "Completion",
    "ConversationState",
    "Query",
    "RoundSummary",
    "RunReport",
    "TextDelta",
    "ToolCallRequest",
]
