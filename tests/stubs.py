"""
Test doubles for the two external collaborators.

- StubToolProvider: ToolProvider backed by plain Python callables
- ScriptedService: GenerativeService replaying a fixed list of model responses
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any

from pydantic_ai.messages import ModelResponse, TextPart, ToolCallPart

from hermes.domain.domain_value import Completion, ConversationState
from hermes.domain.tool_provider import ToolDescriptor, ToolHint, ToolOutput, ToolSet


class StubToolProvider:
    """ToolProvider whose tools are callables: args dict -> text (or raise)."""

    def __init__(self, handlers: Mapping[str, Callable[[dict[str, Any]], Any]] | None = None):
        self.handlers = dict(handlers or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.list_error: BaseException | None = None
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def list_tools(self, typed_hints: Mapping[str, ToolHint] | None = None) -> ToolSet:
        if self.list_error is not None:
            raise self.list_error
        descriptors = [ToolDescriptor(name=name, description=f"{name} tool") for name in self.handlers]
        return ToolSet.from_descriptors(descriptors, self, typed_hints)

    async def invoke(self, name: str, args: dict[str, Any]) -> ToolOutput:
        self.calls.append((name, args))
        result = self.handlers[name](args)
        if inspect.isawaitable(result):
            result = await result
        return ToolOutput(content=str(result))

    async def close(self) -> None:
        self.close_calls += 1


def factory_for(outcome: StubToolProvider | BaseException):
    """Provider factory returning ``outcome`` or raising it."""

    async def factory(endpoint_url: str) -> StubToolProvider:
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return factory


def text_response(text: str) -> ModelResponse:
    return ModelResponse(parts=[TextPart(content=text)])


def tool_response(*calls: tuple[str, dict[str, Any]], text: str = "") -> ModelResponse:
    parts: list[Any] = [TextPart(content=text)] if text else []
    parts.extend(
        ToolCallPart(tool_name=name, args=args, tool_call_id=f"call_{index}")
        for index, (name, args) in enumerate(calls, start=1)
    )
    return ModelResponse(parts=parts)


class ScriptedService:
    """GenerativeService replaying ``steps`` in order.

    A step that is an exception is raised instead of returned. With
    ``repeat_last`` the final step is replayed forever.
    """

    def __init__(self, steps: list[ModelResponse | BaseException], *, repeat_last: bool = False, delay: float = 0.0):
        self.steps = steps
        self.repeat_last = repeat_last
        self.delay = delay
        self.conversations: list[ConversationState] = []
        self.tool_sets: list[ToolSet] = []

    @property
    def calls(self) -> int:
        return len(self.conversations)

    async def complete(self, conversation: ConversationState, tools: ToolSet) -> Completion:
        self.conversations.append(conversation)
        self.tool_sets.append(tools)
        if self.delay:
            await asyncio.sleep(self.delay)
        index = len(self.conversations) - 1
        if self.repeat_last:
            index = min(index, len(self.steps) - 1)
        step = self.steps[index]
        if isinstance(step, BaseException):
            raise step
        return Completion.from_response(step)

    async def stream(self, conversation: ConversationState, tools: ToolSet) -> AsyncIterator[str | Completion]:
        completion = await self.complete(conversation, tools)
        for word in completion.text.split(" "):
            yield word + " "
        yield completion
