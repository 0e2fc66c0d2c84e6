"""Unit tests for the conversion HTTP transport."""

from __future__ import annotations

import base64
import sys
import types
from typing import TYPE_CHECKING

import pytest

from image_converter.application.options import ImageInfo, ValidationLimits
from image_converter.application.requests import ConversionRequest
from image_converter.application.results import BatchOutcome
from image_converter.application.use_cases import BatchConverter
from image_converter.config import ConverterSettings
from image_converter.formats import EncodeParameters, FormatPolicy

if TYPE_CHECKING:
    from fastapi.testclient import TestClient


class _FakeCodec:
    def __init__(self) -> None:
        self.encode_calls = 0

    def probe(self, data: bytes) -> ImageInfo:
        return ImageInfo(width=1, height=1, mode="RGB")

    def encode(self, data: bytes, parameters: EncodeParameters) -> bytes:
        self.encode_calls += 1
        return b"converted:" + data


class _ExplodingConverter(BatchConverter):
    def convert(self, request: ConversionRequest) -> BatchOutcome:
        raise RuntimeError("database on fire")


def _settings(**overrides: object) -> ConverterSettings:
    return ConverterSettings(_env_file=None, **overrides)


def _converter(settings: ConverterSettings, codec: _FakeCodec) -> BatchConverter:
    return BatchConverter(
        FormatPolicy.from_settings(settings),
        codec,
        ValidationLimits.from_settings(settings),
    )


def _client(
    settings: ConverterSettings | None = None,
    converter: BatchConverter | None = None,
) -> TestClient:
    pytest.importorskip("fastapi")
    pytest.importorskip("httpx")

    from fastapi.testclient import TestClient

    from image_converter.service.http_server import create_app

    settings = settings or _settings()
    converter = converter or _converter(settings, _FakeCodec())
    return TestClient(create_app(settings=settings, converter=converter))


def test_health_and_ready() -> None:
    client = _client()
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/readyz").json() == {"status": "ready"}


def test_get_convert_describes_usage() -> None:
    response = _client().get("/api/convert")
    assert response.status_code == 200
    body = response.json()
    assert "POST" in body["message"]
    assert body["supportedFormats"] == ["webp", "jpeg", "png", "avif", "gif"]
    assert body["defaultFormat"] == "webp"
    assert body["maxFileSizeBytes"] == 15 * 1024 * 1024


def test_partial_batch_reports_results_and_errors() -> None:
    """Return 200 with one success and one empty-file error."""
    response = _client().post(
        "/api/convert",
        files=[
            ("files", ("a.png", b"PNGDATA", "image/png")),
            ("files", ("b.png", b"", "image/png")),
        ],
        data={"outputFormat": "webp"},
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["results"]) == 1
    assert len(body["errors"]) == 1
    result = body["results"][0]
    assert result["originalName"] == "a.png"
    assert result["outputName"] == "a.webp"
    assert result["success"] is True
    prefix = "data:image/webp;base64,"
    assert result["dataUrl"].startswith(prefix)
    assert base64.b64decode(result["dataUrl"][len(prefix) :]) == b"converted:PNGDATA"
    assert body["errors"][0]["originalName"] == "b.png"
    assert "empty" in body["errors"][0]["error"].lower()
    assert body["errors"][0]["success"] is False


def test_results_keep_upload_order_and_cover_every_file() -> None:
    names = [f"img{idx}.png" for idx in range(5)]
    files = [
        ("files", (name, b"x" * (idx + 1), "image/png"))
        for idx, name in enumerate(names)
    ]
    files.insert(2, ("files", ("notes.txt", b"hello", "text/plain")))
    response = _client().post(
        "/api/convert", files=files, data={"outputFormat": "png"}
    )

    body = response.json()
    assert [item["originalName"] for item in body["results"]] == names
    assert [item["outputName"] for item in body["results"]] == names
    assert [item["originalName"] for item in body["errors"]] == ["notes.txt"]
    assert "not an image" in body["errors"][0]["error"]


def test_default_format_is_used_when_field_is_missing() -> None:
    response = _client().post(
        "/api/convert", files=[("files", ("a.gif", b"GIF", "image/gif"))]
    )
    assert response.status_code == 200
    assert response.json()["results"][0]["outputName"] == "a.webp"


def test_invalid_format_is_rejected_without_conversion() -> None:
    """Reject unsupported formats with 400 before any file is touched."""
    codec = _FakeCodec()
    settings = _settings()
    client = _client(settings, _converter(settings, codec))
    response = client.post(
        "/api/convert",
        files=[("files", ("a.png", b"PNGDATA", "image/png"))],
        data={"outputFormat": "bmp"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["results"] == []
    assert body["errors"][0]["originalName"] == "Request Error"
    assert "Invalid output format 'bmp'" in body["errors"][0]["error"]
    assert codec.encode_calls == 0


def test_no_files_is_rejected() -> None:
    response = _client().post("/api/convert", data={"outputFormat": "webp"})
    assert response.status_code == 400
    assert response.json()["errors"][0]["error"] == "No files uploaded."


def test_oversized_body_is_rejected_with_413() -> None:
    client = _client(_settings(max_request_size_bytes=256))
    response = client.post(
        "/api/convert",
        files=[("files", ("a.png", b"x" * 1024, "image/png"))],
        data={"outputFormat": "webp"},
    )
    assert response.status_code == 413
    assert "exceeds limit" in response.json()["errors"][0]["error"]


def test_output_format_sent_as_file_is_rejected() -> None:
    response = _client().post(
        "/api/convert",
        files=[
            ("files", ("a.png", b"a", "image/png")),
            ("outputFormat", ("fmt.txt", b"webp", "text/plain")),
        ],
    )
    assert response.status_code == 400
    assert "outputFormat must be a text field" in response.json()["errors"][0]["error"]


def test_too_many_parts_is_rejected() -> None:
    client = _client(_settings(max_files_per_request=1))
    response = client.post(
        "/api/convert",
        files=[
            ("files", ("a.png", b"a", "image/png")),
            ("files", ("b.png", b"b", "image/png")),
        ],
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["originalName"] == "Request Error"


def test_text_part_under_files_key_becomes_a_file_error() -> None:
    response = _client().post(
        "/api/convert",
        files=[("files", ("a.png", b"a", "image/png"))],
        data={"files": "not a file", "outputFormat": "png"},
    )
    body = response.json()
    assert response.status_code == 200
    assert len(body["results"]) + len(body["errors"]) == 2
    assert body["errors"][0]["originalName"] == "Unknown file"


def test_unexpected_failure_returns_500() -> None:
    settings = _settings()
    converter = _ExplodingConverter(
        FormatPolicy.from_settings(settings),
        _FakeCodec(),
        ValidationLimits.from_settings(settings),
    )
    response = _client(settings, converter).post(
        "/api/convert",
        files=[("files", ("a.png", b"a", "image/png"))],
    )
    assert response.status_code == 500
    body = response.json()
    assert body["results"] == []
    assert body["errors"][0]["error"] == "internal server error"
    assert "database" not in response.text


def test_main_runs_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start uvicorn with host and port from the command line."""
    pytest.importorskip("fastapi")
    import image_converter.service.http_server as module

    calls: list[tuple[str, str, int, bool]] = []

    def fake_run(app_ref: str, *, host: str, port: int, reload: bool) -> None:
        calls.append((app_ref, host, port, reload))

    monkeypatch.setattr(module, "uvicorn", types.SimpleNamespace(run=fake_run))
    monkeypatch.setattr(sys, "argv", ["image-converter-http", "--port", "9001"])
    module.main()
    assert calls == [
        ("image_converter.service.http_server:app", "0.0.0.0", 9001, False)
    ]


def test_main_requires_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    pytest.importorskip("fastapi")
    import image_converter.service.http_server as module

    monkeypatch.setattr(module, "uvicorn", None)
    with pytest.raises(RuntimeError, match="uvicorn is required"):
        module.main()
