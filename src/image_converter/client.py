"""HTTP client for a remote conversion service."""

from __future__ import annotations

import logging
from collections import Counter, deque
from collections.abc import Iterable
from types import TracebackType

import httpx
from pydantic import ValidationError

from image_converter.application.requests import ConversionRequest, InputFile
from image_converter.application.results import (
    BatchOutcome,
    ConversionFailure,
    ConversionResult,
)
from image_converter.errors import RemoteConversionError
from image_converter.schemas import (
    ConvertedFilePayload,
    ConvertResponse,
    FailedFilePayload,
)
from image_converter.service.core import success_from_payload

logger = logging.getLogger(__name__)

CONVERT_PATH = "/api/convert"
REMOTE_FAILURE_CODE = "remote_failure"


class RemoteConverter:
    """Run batches against ``POST /api/convert`` of a running service.

    Parameters
    ----------
    base_url : str
        Service root, e.g. ``http://localhost:8090``.
    client : httpx.Client | None, default=None
        Client to reuse; one is created (and owned) when omitted.
    timeout : float, default=120.0
        Request timeout in seconds for an owned client.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.Client | None = None,
        timeout: float = 120.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self.base_url = base_url

    def __enter__(self) -> RemoteConverter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def create_request(
        self, files: Iterable[InputFile], target_format: str
    ) -> ConversionRequest:
        """Build a request; the server validates the format."""
        return ConversionRequest.create(files, target_format.strip().lower())

    def convert(self, request: ConversionRequest) -> BatchOutcome:
        """Upload the batch and map the response back to per-file results.

        Raises
        ------
        RemoteConversionError
            If the service is unreachable or rejects the whole request.
        """
        parts = [
            (
                "files",
                (
                    item.name,
                    item.read(),
                    item.declared_mime_type or "application/octet-stream",
                ),
            )
            for item in request.files
        ]
        try:
            response = self._client.post(
                CONVERT_PATH,
                files=parts,
                data={"outputFormat": request.target_format},
            )
        except httpx.HTTPError as exc:
            raise RemoteConversionError(f"Request failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise RemoteConversionError(
                _error_message(response), status_code=response.status_code
            )
        try:
            body = ConvertResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise RemoteConversionError(
                f"Unexpected response from server: {exc}",
                status_code=response.status_code,
            ) from exc
        return BatchOutcome(
            results=tuple(_merge_in_submission_order(request.files, body)),
            target_format=request.target_format,
        )


def _error_message(response: httpx.Response) -> str:
    fallback = f"Server error: {response.status_code} {response.reason_phrase}"
    try:
        body = ConvertResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return fallback
    if body.errors:
        return body.errors[0].error
    return fallback


def _merge_in_submission_order(
    files: Iterable[InputFile], body: ConvertResponse
) -> list[ConversionResult]:
    """Interleave the partitioned response lists back into upload order.

    Both lists preserve upload order, so each file takes the head of
    whichever list names it. The transport may rewrite a filename (httpx
    sends ``"`` as ``%22``); when neither head matches, the file takes the
    first head that no later upload claims by name. Entries that match no
    file are appended.
    """
    uploads = list(files)
    successes: deque[ConvertedFilePayload] = deque(body.results)
    failures: deque[FailedFilePayload] = deque(body.errors)
    upcoming = Counter(item.name for item in uploads)
    merged: list[ConversionResult] = []
    for item in uploads:
        upcoming[item.name] -= 1
        if successes and successes[0].original_name == item.name:
            merged.append(success_from_payload(successes.popleft()))
        elif failures and failures[0].original_name == item.name:
            merged.append(_failure_from_payload(failures.popleft()))
        elif successes and upcoming[successes[0].original_name] <= 0:
            merged.append(success_from_payload(successes.popleft()))
        elif failures and upcoming[failures[0].original_name] <= 0:
            merged.append(_failure_from_payload(failures.popleft()))
        else:
            logger.warning("no result returned for %s", item.name)
    merged.extend(success_from_payload(payload) for payload in successes)
    merged.extend(_failure_from_payload(payload) for payload in failures)
    return merged


def _failure_from_payload(payload: FailedFilePayload) -> ConversionFailure:
    return ConversionFailure(
        source_name=payload.original_name,
        message=payload.error,
        code=REMOTE_FAILURE_CODE,
    )
