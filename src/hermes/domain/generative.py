"""Generative Service - One Model Step at a Time.

The orchestrator owns the round loop and step budget, so the generative
service only performs single steps: given the conversation so far and the
tools on offer, return the model's next response.

Architecture:
    GenerativeService (Protocol)
    ├─ complete(conversation, tools) → Completion
    └─ stream(conversation, tools) → str chunks, then one Completion

    PydanticAIService: Pydantic AI direct model API (no Agent, no tool
    execution); tools are advertised as function tools and the model's tool
    calls come back in the Completion for the orchestrator to dispatch.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

import structlog
from pydantic_ai.direct import model_request, model_request_stream
from pydantic_ai.messages import PartDeltaEvent, PartStartEvent, TextPart, TextPartDelta
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.settings import ModelSettings

from .domain_value import Completion, ConversationState
from .errors import GenerativeServiceError, HermesError, describe
from .tool_provider import ToolSet

logger = structlog.get_logger(__name__)


@runtime_checkable
class GenerativeService(Protocol):
    """Capability interface to a language model."""

    async def complete(self, conversation: ConversationState, tools: ToolSet) -> Completion: ...

    def stream(self, conversation: ConversationState, tools: ToolSet) -> AsyncIterator[str | Completion]: ...


class PydanticAIService:
    """GenerativeService over any Pydantic AI model.

    Args:
        model: Pydantic AI Model instance or model string ("openai:gpt-4o-mini")
        settings: Optional model settings (temperature, max_tokens, ...)

    Example:
        >>> service = PydanticAIService.openai("gpt-4o-mini", api_key="sk-...")
        >>> completion = await service.complete(conversation, tools)
        >>> completion.tool_calls
    """

    def __init__(self, model: Model | str, settings: ModelSettings | None = None):
        self.model = model
        self.settings = settings

    @classmethod
    def openai(cls, model_name: str, api_key: str, settings: ModelSettings | None = None) -> PydanticAIService:
        from pydantic_ai.models.openai import OpenAIChatModel
        from pydantic_ai.providers.openai import OpenAIProvider

        return cls(OpenAIChatModel(model_name, provider=OpenAIProvider(api_key=api_key)), settings)

    def _parameters(self, tools: ToolSet) -> ModelRequestParameters:
        return ModelRequestParameters(function_tools=tools.definitions(), allow_text_output=True)

    async def complete(self, conversation: ConversationState, tools: ToolSet) -> Completion:
        """One model request.

        Raises:
            GenerativeServiceError: Any failure talking to the model, or a
                response carrying malformed tool-call arguments
        """
        try:
            response = await model_request(
                self.model,
                conversation.message_list,
                model_settings=self.settings,
                model_request_parameters=self._parameters(tools),
            )
        except Exception as exc:
            raise GenerativeServiceError(f"Model request failed: {describe(exc)}") from exc
        return Completion.from_response(response)

    async def stream(self, conversation: ConversationState, tools: ToolSet) -> AsyncIterator[str | Completion]:
        """One streamed model request: text chunks as they arrive, then the Completion."""
        try:
            async with model_request_stream(
                self.model,
                conversation.message_list,
                model_settings=self.settings,
                model_request_parameters=self._parameters(tools),
            ) as streamed:
                async for event in streamed:
                    if isinstance(event, PartStartEvent) and isinstance(event.part, TextPart):
                        if event.part.content:
                            yield event.part.content
                    elif isinstance(event, PartDeltaEvent) and isinstance(event.delta, TextPartDelta):
                        if event.delta.content_delta:
                            yield event.delta.content_delta
                response = streamed.get()
        except HermesError:
            raise
        except Exception as exc:
            raise GenerativeServiceError(f"Model stream failed: {describe(exc)}") from exc
        yield Completion.from_response(response)


__all__ = ["GenerativeService", "PydanticAIService"]
