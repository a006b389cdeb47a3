"""Search API contracts - response bodies that are not schema payloads."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ...domain.domain_type import ConnectionMode


class ErrorDetail(BaseModel):
    """Machine-readable error code plus a human-readable message."""

    code: str = Field(examples=["invalid_params"])
    message: str = Field(examples=["'q' value cannot be blank"])


class ErrorResponse(BaseModel):
    """Error envelope: ``{"error": {"code", "message"}}``."""

    error: ErrorDetail

    @classmethod
    def of(cls, code: str, message: str) -> ErrorResponse:
        return cls(error=ErrorDetail(code=code, message=message))


class ToolsResponse(BaseModel):
    """Tools the provider currently advertises."""

    mode: ConnectionMode = Field(description="Tool provider connection mode")
    tools: list[str] = Field(
        default_factory=list,
        description="Advertised tool names (empty when degraded)",
        examples=[["searchAreas", "listBrands"]],
    )
