"""Pydantic models backing the gateway API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class InvocationRequest(BaseModel):
    """Positional string arguments for a named transaction."""

    args: list[str] = Field(default_factory=list, max_length=16)

    @field_validator("args")
    @classmethod
    def _validate_arg_size(cls, values: list[str]) -> list[str]:
        for value in values:
            if len(value.encode("utf-8")) > 4096:
                raise ValueError("Arguments must remain under 4KB")
        return values


class InvocationResponse(BaseModel):
    """Result of a submitted transaction."""

    tx_id: str
    function: str
    result: Any = Field(default=None, description="Decoded handler result, if any")


class ErrorResponse(BaseModel):
    """Error body returned for every failed invocation."""

    error: str = Field(description="Stable error code, e.g. not_found")
    detail: str


class JournalEntryModel(BaseModel):
    """A journaled invocation."""

    tx_id: str
    function: str
    args: list[str]
    status: str
    error_code: str | None = None
    error: str | None = None
    timestamp: str
    latency_ms: float


__all__ = [
    "InvocationRequest",
    "InvocationResponse",
    "ErrorResponse",
    "JournalEntryModel",
]
