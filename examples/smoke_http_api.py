from __future__ import annotations

import os
import time
from io import BytesIO

import httpx
from PIL import Image

from image_converter.application.requests import InputFile
from image_converter.client import RemoteConverter
from image_converter.errors import RemoteConversionError


def _wait_http_ok(
    client: httpx.Client, path: str, timeout_seconds: float = 40.0
) -> dict:
    deadline = time.time() + timeout_seconds
    last_error: Exception | None = None
    while time.time() < deadline:
        try:
            response = client.get(path, timeout=3.0)
            if response.status_code == 200:
                return response.json()
        except httpx.HTTPError as exc:
            last_error = exc
        time.sleep(0.5)
    raise RuntimeError(f"timed out waiting for HTTP 200 at {path}: {last_error}")


def _png() -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", (16, 16), (0, 128, 255, 128)).save(buffer, format="PNG")
    return buffer.getvalue()


def _assert_probes(client: httpx.Client) -> None:
    assert _wait_http_ok(client, "/healthz").get("status") == "ok"
    assert _wait_http_ok(client, "/readyz").get("status") == "ready"


def _assert_partial_batch(remote: RemoteConverter) -> None:
    request = remote.create_request(
        [
            InputFile.from_bytes("a.png", _png()),
            InputFile.from_bytes("b.png", b"", mime_type="image/png"),
        ],
        "webp",
    )
    outcome = remote.convert(request)
    assert [item.success for item in outcome.results] == [True, False], outcome
    assert "empty" in outcome.failures[0].message.lower(), outcome


def _assert_bad_format(remote: RemoteConverter) -> None:
    request = remote.create_request([InputFile.from_bytes("a.png", _png())], "bmp")
    try:
        remote.convert(request)
    except RemoteConversionError as exc:
        assert exc.status_code == 400, exc
        return
    raise AssertionError("expected 400 for unsupported output format")


def main() -> None:
    api_base = os.getenv("IMAGE_CONVERTER_API_BASE", "http://localhost:8090")
    with httpx.Client(base_url=api_base, timeout=30.0) as client:
        _assert_probes(client)
        remote = RemoteConverter(api_base, client=client)
        _assert_partial_batch(remote)
        _assert_bad_format(remote)

    print("image converter API smoke checks passed")


if __name__ == "__main__":
    main()
