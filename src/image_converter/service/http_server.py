"""HTTP server for batch image conversion."""

from __future__ import annotations

import argparse
import logging
import os
from functools import partial
from types import ModuleType

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from image_converter import __version__
from image_converter.application.requests import (
    UNKNOWN_FILE_NAME,
    ConversionRequest,
    InputFile,
)
from image_converter.application.use_cases import BatchConverter
from image_converter.config import ConverterSettings, get_settings
from image_converter.errors import MalformedRequestError, RequestError
from image_converter.schemas import (
    ConvertInfoResponse,
    ConvertResponse,
    HealthResponse,
    ReadyResponse,
)
from image_converter.service.core import shape_batch_response, shape_request_error
from image_converter.service.middleware import RequestSizeLimitMiddleware

logger = logging.getLogger(__name__)

try:
    import uvicorn as _uvicorn_imported

    _uvicorn_module: ModuleType | None = _uvicorn_imported
except ModuleNotFoundError:  # pragma: no cover
    _uvicorn_module = None

uvicorn: ModuleType | None = _uvicorn_module

FILES_FIELD = "files"
FORMAT_FIELD = "outputFormat"
INTERNAL_ERROR_MESSAGE = "internal server error"


def _read_upload(upload: UploadFile) -> bytes:
    """Read an uploaded part from its spooled file."""
    upload.file.seek(0)
    return upload.file.read()


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    handle = upload.file
    position = handle.tell()
    handle.seek(0, os.SEEK_END)
    size = handle.tell()
    handle.seek(position)
    return size


def _input_from_part(part: UploadFile | str) -> InputFile:
    """Wrap one ``files`` form part as an input file."""
    if isinstance(part, UploadFile):
        return InputFile(
            name=part.filename or UNKNOWN_FILE_NAME,
            byte_size=_upload_size(part),
            declared_mime_type=part.content_type or "",
            loader=partial(_read_upload, part),
        )
    # A plain text field sent under the files key.
    encoded = part.encode("utf-8")
    return InputFile(
        name=UNKNOWN_FILE_NAME,
        byte_size=len(encoded),
        declared_mime_type="",
        loader=lambda: encoded,
    )


def _parse_output_format(form: FormData, default: str) -> str:
    """Return the requested output format, falling back to ``default``."""
    raw = form.get(FORMAT_FIELD)
    if isinstance(raw, UploadFile):
        raise MalformedRequestError(f"{FORMAT_FIELD} must be a text field.")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return default


def build_conversion_request(
    form: FormData,
    converter: BatchConverter,
    settings: ConverterSettings,
) -> ConversionRequest:
    """Validate request-level fields of a parsed multipart form.

    Raises
    ------
    MalformedRequestError
        If ``outputFormat`` was sent as a file.
    UnsupportedFormatError
        If ``outputFormat`` is not enabled.
    NoFilesProvidedError
        If no ``files`` parts were sent.
    """
    target_format = _parse_output_format(form, settings.default_format)
    files = [_input_from_part(part) for part in form.getlist(FILES_FIELD)]
    return converter.create_request(files, target_format)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        shape_request_error(message).model_dump(by_alias=True),
        status_code=status_code,
    )


def create_app(
    settings: ConverterSettings | None = None,
    converter: BatchConverter | None = None,
) -> FastAPI:
    """Create the image conversion HTTP application.

    Parameters
    ----------
    settings : ConverterSettings | None, default=None
        Limits and defaults; read from the environment when omitted.
    converter : BatchConverter | None, default=None
        Batch converter; built from ``settings`` when omitted.
    """
    settings = settings or get_settings()
    converter = converter or BatchConverter.from_settings(settings)

    app = FastAPI(
        title="Image Batch Converter",
        version=__version__,
        description=(
            "Upload images and receive them converted to WebP, JPEG, PNG, AVIF "
            "or GIF as inline data URIs."
        ),
    )
    app.add_middleware(
        RequestSizeLimitMiddleware,
        max_body_bytes=settings.max_request_size_bytes,
    )
    app.state.settings = settings
    app.state.converter = converter

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/readyz", response_model=ReadyResponse)
    async def readyz() -> ReadyResponse:
        return ReadyResponse(status="ready")

    @app.get("/api/convert", response_model=ConvertInfoResponse)
    async def convert_info() -> JSONResponse:
        """Describe how to use the conversion endpoint."""
        payload = ConvertInfoResponse(
            message="Send a POST request with image files to convert.",
            supported_formats=converter.policy.names(),
            default_format=settings.default_format,
            max_file_size_bytes=settings.max_file_size_bytes,
        )
        return JSONResponse(payload.model_dump(by_alias=True))

    @app.post(
        "/api/convert",
        response_model=ConvertResponse,
        responses={
            400: {"model": ConvertResponse},
            413: {"model": ConvertResponse},
            500: {"model": ConvertResponse},
        },
    )
    async def convert(request: Request) -> JSONResponse:
        """Convert uploaded files; per-file failures are reported in the body."""
        try:
            async with request.form(
                max_files=settings.max_files_per_request
            ) as form:
                conversion_request = build_conversion_request(
                    form, converter, settings
                )
                outcome = await run_in_threadpool(
                    converter.convert, conversion_request
                )
        except RequestError as exc:
            logger.info("rejecting conversion request: %s", exc)
            return _error_response(exc.status_code, str(exc))
        except StarletteHTTPException as exc:
            # Raised by Starlette for malformed multipart bodies.
            return _error_response(exc.status_code, str(exc.detail))
        except Exception:
            logger.exception("unexpected error during HTTP batch conversion")
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE
            )

        return JSONResponse(shape_batch_response(outcome).model_dump(by_alias=True))

    return app


app = create_app()


def main() -> None:
    """Run the conversion HTTP server."""
    if uvicorn is None:
        raise RuntimeError(
            "uvicorn is required to run image-converter-http. "
            "Install with extra: .[server]"
        )
    parser = argparse.ArgumentParser(description="Image batch conversion HTTP server.")
    parser.add_argument(
        "--host",
        default=os.getenv("IMAGE_CONVERTER_HTTP_HOST", "0.0.0.0"),
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("IMAGE_CONVERTER_HTTP_PORT", "8090")),
    )
    args = parser.parse_args()
    uvicorn.run(
        "image_converter.service.http_server:app",
        host=args.host,
        port=args.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
