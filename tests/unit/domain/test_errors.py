"""
Tests for the error classifier and failure values.

These tests demonstrate:
- Testing a pure mapping function over a table of inputs
- Testing failure values convert back into their exception types
"""

import json

import anyio
import httpx
import pytest

from hermes.domain.domain_type import ErrorKind, ErrorSource
from hermes.domain.errors import (
    ExtractionFailure,
    GenerativeServiceError,
    InvalidRequestError,
    ToolInvocationError,
    ToolTransportError,
    classify,
    describe,
    is_transport_failure,
)


@pytest.mark.parametrize(
    ("source", "error", "kind"),
    [
        (ErrorSource.CONNECTION, ConnectionRefusedError("refused"), ErrorKind.CONNECTION_UNAVAILABLE),
        (ErrorSource.CONNECTION, ValueError("bad url"), ErrorKind.CONNECTION_UNAVAILABLE),
        (ErrorSource.TOOL_PROVIDER, RuntimeError("boom"), ErrorKind.TOOL_INVOCATION_FAILED),
        (ErrorSource.GENERATIVE_SERVICE, TimeoutError(), ErrorKind.GENERATIVE_SERVICE_FAILED),
        (ErrorSource.EXTRACTOR, json.JSONDecodeError("Expecting value", "x", 0), ErrorKind.MALFORMED_OUTPUT),
        (ErrorSource.EXTRACTOR, ValueError("wrong shape"), ErrorKind.SCHEMA_MISMATCH),
        (ErrorSource.REQUEST, ValueError("blank"), ErrorKind.INVALID_REQUEST),
    ],
)
def test_classify_maps_source_and_error_to_kind(source, error, kind):
    assert classify(source, error) == kind


def test_hermes_errors_keep_their_own_kind_regardless_of_source():
    """
    Demonstrates: Testing precedence (the exception's kind beats the source).
    """
    assert classify(ErrorSource.GENERATIVE_SERVICE, ToolTransportError("dead")) == ErrorKind.TOOL_INVOCATION_FAILED
    assert classify(ErrorSource.TOOL_PROVIDER, InvalidRequestError("blank")) == ErrorKind.INVALID_REQUEST


@pytest.mark.parametrize(
    "error",
    [
        anyio.ClosedResourceError(),
        anyio.BrokenResourceError(),
        httpx.ConnectError("connection reset"),
        ConnectionResetError(),
        ToolTransportError("session closed"),
    ],
)
def test_transport_failures_are_recognised(error):
    assert is_transport_failure(error)


@pytest.mark.parametrize("error", [ToolInvocationError("bad args"), ValueError("x"), KeyError("tool")])
def test_ordinary_tool_errors_are_not_transport_failures(error):
    assert not is_transport_failure(error)


def test_describe_falls_back_to_type_name():
    assert describe(TimeoutError()) == "TimeoutError"
    assert describe(ValueError("  bad value ")) == "bad value"


def test_failure_from_error_captures_raw_payload_and_round_trips_to_exception():
    error = GenerativeServiceError("model refused", raw="partial text")

    failure = ExtractionFailure.from_error(ErrorSource.GENERATIVE_SERVICE, error)

    assert failure.kind == ErrorKind.GENERATIVE_SERVICE_FAILED
    assert failure.raw == "partial text"
    with pytest.raises(GenerativeServiceError, match="model refused"):
        failure.raise_for_failure()
