"""Domain Layer - Search Orchestration Core.

This module provides the core of Hermes search: a tool-using model loop whose
free-form answer is turned into schema-valid data.

Key Components:
    - ConnectionManager: Tool provider session with CONNECTED/DEGRADED modes
    - QueryOrchestrator: Multi-step loop of model steps and concurrent tool calls
    - OutputExtractor: Fence stripping, JSON parsing, schema validation
    - SchemaRegistry: Composable response schemas and their interpreter
    - errors: Fixed error kinds, typed failures, the classifier

Design Principles:
    - Pydantic AI Native: conversation messages are Pydantic AI types
    - Immutable by Default: values and schemas use frozen=True
    - Failures as Values: runs return ExtractionFailure instead of raising
"""

from .connection import ConnectionManager
from .domain_type import ConnectionMode, ErrorKind, ErrorSource, ResultStatus, SchemaKind, ViolationRule
from .domain_value import Completion, ConversationState, Query, RoundSummary, RunReport, TextDelta, ToolCallRequest
from .errors import (
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    GenerativeServiceError,
    HermesError,
    InvalidRequestError,
    ToolInvocationError,
    ToolTransportError,
    classify,
)
from .extractor import OutputExtractor, extract, strip_fences
from .generative import GenerativeService, PydanticAIService
from .orchestrator import QueryOrchestrator, build_system_prompt
from .schema import SchemaRegistry, to_json_schema, validate
from .search_schema import (
    AGENTIC_SEARCH_SCHEMA,
    AI_SEARCH_RESPONSE_SCHEMA,
    LEGACY_SEARCH_SCHEMA,
    default_registry,
    legacy_empty_response,
)
from .tool_provider import McpToolProvider, ToolDescriptor, ToolHint, ToolOutput, ToolProvider, ToolSet

__all__ = [
    "AGENTIC_SEARCH_SCHEMA",
    "AI_SEARCH_RESPONSE_SCHEMA",
    "Completion",
    "ConnectionManager",
    "ConnectionMode",
    "ConversationState",
    "ErrorKind",
    "ErrorSource",
    "ExtractionFailure",
    "ExtractionResult",
    "ExtractionSuccess",
    "GenerativeService",
    "GenerativeServiceError",
    "HermesError",
    "InvalidRequestError",
    "LEGACY_SEARCH_SCHEMA",
    "McpToolProvider",
    "OutputExtractor",
    "PydanticAIService",
    "Query",
    "QueryOrchestrator",
    "ResultStatus",
    "RoundSummary",
    "RunReport",
    "SchemaKind",
    "SchemaRegistry",
    "TextDelta",
    "ToolCallRequest",
    "ToolDescriptor",
    "ToolHint",
    "ToolInvocationError",
    "ToolOutput",
    "ToolProvider",
    "ToolSet",
    "ToolTransportError",
    "ViolationRule",
    "build_system_prompt",
    "classify",
    "default_registry",
    "extract",
    "legacy_empty_response",
    "strip_fences",
    "to_json_schema",
    "validate",
]
