"""Error Kinds, Typed Failures and the ErrorClassifier.

Every failure in the core ends up as one ErrorKind. Failures travel as values
(ExtractionFailure) so callers can inspect and choose to mask them; each kind
also has an exception class for callers that prefer to raise.

Classification is a pure function of (source component, raised error): no
logging, no retries, no side effects.
"""

from __future__ import annotations

import json
from typing import Any, Literal

import anyio
import httpx
from pydantic import BaseModel, ConfigDict

from .domain_type import ErrorKind, ErrorSource, ResultStatus
from .schema import Violation


class HermesError(Exception):
    """Base class for classified failures.

    Attributes:
        kind: ErrorKind of this failure
        message: Human-readable description
        raw: Offending payload (model text, tool output) for diagnostics
    """

    kind: ErrorKind = ErrorKind.GENERATIVE_SERVICE_FAILED

    def __init__(self, message: str, *, raw: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.raw = raw


class ConnectionUnavailableError(HermesError):
    kind = ErrorKind.CONNECTION_UNAVAILABLE


class ToolInvocationError(HermesError):
    kind = ErrorKind.TOOL_INVOCATION_FAILED


class ToolTransportError(ToolInvocationError):
    """The tool transport itself is unusable; the run cannot continue."""


class GenerativeServiceError(HermesError):
    kind = ErrorKind.GENERATIVE_SERVICE_FAILED


class MalformedOutputError(HermesError):
    kind = ErrorKind.MALFORMED_OUTPUT


class SchemaMismatchError(HermesError):
    kind = ErrorKind.SCHEMA_MISMATCH

    def __init__(self, message: str, *, raw: str | None = None, violation: Violation | None = None) -> None:
        super().__init__(message, raw=raw)
        self.violation = violation


class InvalidRequestError(HermesError):
    kind = ErrorKind.INVALID_REQUEST


ERROR_TYPES: dict[ErrorKind, type[HermesError]] = {
    ErrorKind.CONNECTION_UNAVAILABLE: ConnectionUnavailableError,
    ErrorKind.TOOL_INVOCATION_FAILED: ToolInvocationError,
    ErrorKind.GENERATIVE_SERVICE_FAILED: GenerativeServiceError,
    ErrorKind.MALFORMED_OUTPUT: MalformedOutputError,
    ErrorKind.SCHEMA_MISMATCH: SchemaMismatchError,
    ErrorKind.INVALID_REQUEST: InvalidRequestError,
}

_SOURCE_KINDS: dict[ErrorSource, ErrorKind] = {
    ErrorSource.CONNECTION: ErrorKind.CONNECTION_UNAVAILABLE,
    ErrorSource.TOOL_PROVIDER: ErrorKind.TOOL_INVOCATION_FAILED,
    ErrorSource.GENERATIVE_SERVICE: ErrorKind.GENERATIVE_SERVICE_FAILED,
    ErrorSource.REQUEST: ErrorKind.INVALID_REQUEST,
}

_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
    httpx.TransportError,
    ConnectionError,
)


def classify(source: ErrorSource, error: BaseException) -> ErrorKind:
    """Map a raised error to its ErrorKind.

    A HermesError already knows its kind. Extractor errors split on whether
    the text failed to parse (MALFORMED_OUTPUT) or parsed but did not conform
    (SCHEMA_MISMATCH). Every other error takes the kind of its source.
    """
    if isinstance(error, HermesError):
        return error.kind
    if source == ErrorSource.EXTRACTOR:
        if isinstance(error, json.JSONDecodeError | UnicodeDecodeError):
            return ErrorKind.MALFORMED_OUTPUT
        return ErrorKind.SCHEMA_MISMATCH
    return _SOURCE_KINDS[source]


def is_transport_failure(error: BaseException) -> bool:
    """True when ``error`` means the tool transport is dead, not just one call."""
    return isinstance(error, (ToolTransportError, *_TRANSPORT_ERRORS))


def describe(error: BaseException) -> str:
    """Error text for messages and logs; falls back to the type name."""
    text = str(error).strip()
    return text or type(error).__name__


# ---------------------------------------------------------------------------
# ExtractionResult: discriminated union on ``status``
# ---------------------------------------------------------------------------


class ExtractionSuccess(BaseModel):
    """Value proven to conform to the target schema.

    Part of ExtractionResult (Success | Failure). Only the extractor builds
    these, and only after validation passed.
    """

    status: Literal[ResultStatus.SUCCESS] = ResultStatus.SUCCESS
    value: Any
    schema_name: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> Any:
        return self.value


class ExtractionFailure(BaseModel):
    """Classified failure with diagnostics.

    Attributes:
        kind: One of the fixed ErrorKind values
        message: Concise, deterministic description
        raw: Offending text, when there is one (model output for MALFORMED_OUTPUT)
        violation: First violated rule for SCHEMA_MISMATCH
    """

    status: Literal[ResultStatus.FAILED] = ResultStatus.FAILED
    kind: ErrorKind
    message: str
    raw: str | None = None
    violation: Violation | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_error(cls, source: ErrorSource, error: BaseException) -> ExtractionFailure:
        """Classify ``error`` and capture its diagnostics."""
        return cls(
            kind=classify(source, error),
            message=describe(error),
            raw=getattr(error, "raw", None),
            violation=getattr(error, "violation", None),
        )

    @property
    def ok(self) -> bool:
        return False

    def to_exception(self) -> HermesError:
        error_type = ERROR_TYPES[self.kind]
        if error_type is SchemaMismatchError:
            return SchemaMismatchError(self.message, raw=self.raw, violation=self.violation)
        return error_type(self.message, raw=self.raw)

    def raise_for_failure(self) -> None:
        raise self.to_exception()

    def unwrap(self) -> Any:
        raise self.to_exception()


ExtractionResult = ExtractionSuccess | ExtractionFailure


__all__ = [
    "ConnectionUnavailableError",
    "ERROR_TYPES",
    "ExtractionFailure",
    "ExtractionResult",
    "ExtractionSuccess",
    "GenerativeServiceError",
    "HermesError",
    "InvalidRequestError",
    "MalformedOutputError",
    "SchemaMismatchError",
    "ToolInvocationError",
    "ToolTransportError",
    "classify",
    "describe",
    "is_transport_failure",
]
