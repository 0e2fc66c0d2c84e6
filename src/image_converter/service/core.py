"""Transport-neutral shaping of batch outcomes."""

from __future__ import annotations

import base64
import binascii
import re

from image_converter.application.results import BatchOutcome, ConversionSuccess
from image_converter.schemas import (
    ConvertedFilePayload,
    ConvertResponse,
    FailedFilePayload,
)

REQUEST_ERROR_NAME = "Request Error"

_DATA_URL = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.S
)


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(value: str) -> tuple[str, bytes]:
    """Decode a base64 data URI into ``(mime_type, bytes)``.

    Raises
    ------
    ValueError
        If ``value`` is not a base64 data URI.
    """
    match = _DATA_URL.match(value)
    if match is None:
        raise ValueError("value is not a base64 data URI")
    try:
        payload = base64.b64decode(match.group("payload"), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 payload: {exc}") from exc
    return match.group("mime"), payload


def shape_batch_response(outcome: BatchOutcome) -> ConvertResponse:
    """Build the JSON body for a processed batch."""
    return ConvertResponse(
        results=[
            ConvertedFilePayload(
                original_name=item.source_name,
                output_name=item.output_name,
                data_url=to_data_url(item.data, item.mime_type),
            )
            for item in outcome.successes
        ],
        errors=[
            FailedFilePayload(original_name=item.source_name, error=item.message)
            for item in outcome.failures
        ],
    )


def shape_request_error(message: str) -> ConvertResponse:
    """Build the JSON body for an error that rejected the whole request."""
    return ConvertResponse(
        results=[],
        errors=[FailedFilePayload(original_name=REQUEST_ERROR_NAME, error=message)],
    )


def download_items(outcome: BatchOutcome) -> list[tuple[str, bytes]]:
    """Return in-memory ``(output_name, bytes)`` pairs for successful files."""
    return [(item.output_name, item.data) for item in outcome.successes]


def success_from_payload(payload: ConvertedFilePayload) -> ConversionSuccess:
    """Rebuild a success record from a response payload."""
    mime_type, data = decode_data_url(payload.data_url)
    return ConversionSuccess(
        source_name=payload.original_name,
        output_name=payload.output_name,
        data=data,
        mime_type=mime_type,
    )
