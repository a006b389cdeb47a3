"""Domain Type System - Core Enumerations.

Defines type-safe constants using Python's StrEnum for domain concepts.
Using StrEnum instead of plain Enum provides automatic string coercion
and better JSON serialization without custom encoders.
"""

from enum import StrEnum


class ConnectionMode(StrEnum):
    """Tool Provider Connection States.

    One value per ConnectionManager. The manager only ever moves between these
    two states; there is no "connecting" state visible to readers.

    States:
        CONNECTED: A live MCP session is held and its tools are offered to the model
        DEGRADED: No session; the model answers from its own knowledge only
    """

    CONNECTED = "connected"
    DEGRADED = "degraded"


class ErrorKind(StrEnum):
    """Classification of every failure the core can produce.

    Propagation Policy:
        CONNECTION_UNAVAILABLE: absorbed into degraded mode, never surfaced
        TOOL_INVOCATION_FAILED: absorbed into the conversation unless the transport is dead
        GENERATIVE_SERVICE_FAILED: aborts the run, surfaced to the caller
        MALFORMED_OUTPUT: surfaced with the raw text attached
        SCHEMA_MISMATCH: surfaced with the first violated rule
        INVALID_REQUEST: surfaced before any network call is made
    """

    CONNECTION_UNAVAILABLE = "connection_unavailable"
    TOOL_INVOCATION_FAILED = "tool_invocation_failed"
    GENERATIVE_SERVICE_FAILED = "generative_service_failed"
    MALFORMED_OUTPUT = "malformed_output"
    SCHEMA_MISMATCH = "schema_mismatch"
    INVALID_REQUEST = "invalid_request"


class ErrorSource(StrEnum):
    """Component that raised a failure, used as ErrorClassifier input."""

    CONNECTION = "connection"
    TOOL_PROVIDER = "tool_provider"
    GENERATIVE_SERVICE = "generative_service"
    EXTRACTOR = "extractor"
    REQUEST = "request"


class ResultStatus(StrEnum):
    """Outcome of an extraction (discriminator for ExtractionResult)."""

    SUCCESS = "success"
    FAILED = "failed"


class SchemaKind(StrEnum):
    """Node types of the response schema language.

    Discriminator for the SchemaNode union. Each value corresponds to exactly
    one node model in hermes.domain.schema.
    """

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    LITERAL = "literal"
    ENUM = "enum"
    ARRAY = "array"
    OBJECT = "object"
    UNION = "union"
    RECORD = "record"
    ANY = "any"


class ViolationRule(StrEnum):
    """Rule broken by a value that failed schema validation."""

    MISSING_FIELD = "missing_field"
    UNEXPECTED_FIELD = "unexpected_field"
    TYPE = "type"
    LITERAL = "literal"
    ENUM = "enum"
    RANGE = "range"
    LENGTH = "length"
    UNION = "union"


__all__ = [
    "ConnectionMode",
    "ErrorKind",
    "ErrorSource",
    "ResultStatus",
    "SchemaKind",
    "ViolationRule",
]
