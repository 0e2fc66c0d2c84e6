"""ASGI middleware enforcing the request body ceiling."""

from __future__ import annotations

import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from image_converter.errors import RequestTooLargeError
from image_converter.service.core import shape_request_error

logger = logging.getLogger(__name__)


def too_large_response(exc: RequestTooLargeError) -> JSONResponse:
    """Build the 413 response for an oversized body."""
    return JSONResponse(
        shape_request_error(str(exc)).model_dump(by_alias=True),
        status_code=exc.status_code,
    )


def _declared_length(scope: Scope) -> int | None:
    for key, value in scope.get("headers", []):
        if key == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


class RequestSizeLimitMiddleware:
    """Reject request bodies larger than ``max_body_bytes``.

    Bodies announcing a larger ``Content-Length`` are rejected before the
    route runs. Streamed bodies are counted as they are received and
    ``RequestTooLargeError`` is raised from ``receive`` once the ceiling is
    crossed; routes may handle it themselves; otherwise it is turned into a
    413 here.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = _declared_length(scope)
        if declared is not None and declared > self.max_body_bytes:
            logger.warning(
                "rejecting request of %d bytes (limit %d)",
                declared,
                self.max_body_bytes,
            )
            response = too_large_response(RequestTooLargeError(self.max_body_bytes))
            await response(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise RequestTooLargeError(self.max_body_bytes)
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except RequestTooLargeError as exc:
            if response_started:
                raise
            logger.warning("request body exceeded %d bytes", self.max_body_bytes)
            await too_large_response(exc)(scope, receive, send)
