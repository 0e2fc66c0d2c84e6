"""Pydantic schemas for HTTP payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class ConvertedFilePayload(_CamelModel):
    """One successful conversion."""

    original_name: str
    output_name: str
    data_url: str
    success: Literal[True] = True


class FailedFilePayload(_CamelModel):
    """One failed conversion or a request-level error."""

    original_name: str
    error: str
    success: Literal[False] = False


class ConvertResponse(_CamelModel):
    """Body returned by the conversion endpoint."""

    results: list[ConvertedFilePayload] = Field(default_factory=list)
    errors: list[FailedFilePayload] = Field(default_factory=list)


class ConvertInfoResponse(_CamelModel):
    """Body returned by ``GET /api/convert``."""

    message: str
    supported_formats: list[str]
    default_format: str
    max_file_size_bytes: int


class HealthResponse(BaseModel):
    """Health response payload."""

    model_config = ConfigDict(extra="forbid")

    status: str


class ReadyResponse(BaseModel):
    """Readiness response payload."""

    model_config = ConfigDict(extra="forbid")

    status: str
