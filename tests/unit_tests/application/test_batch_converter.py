"""Unit tests for the batch conversion use-case."""

from __future__ import annotations

import threading
import time

import pytest

from image_converter.application.options import ImageInfo, ValidationLimits
from image_converter.application.requests import ConversionRequest, InputFile
from image_converter.application.results import ConversionFailure, ConversionSuccess
from image_converter.application.use_cases import BatchConverter, convert_batch
from image_converter.config import ConverterSettings
from image_converter.errors import (
    CodecError,
    NoFilesProvidedError,
    UnsupportedFormatError,
)
from image_converter.formats import EncodeParameters, FormatPolicy


class _FakeCodec:
    """Echo the input with a format prefix; fail on configured payloads."""

    def __init__(
        self,
        failures: dict[bytes, Exception] | None = None,
        delay: dict[bytes, float] | None = None,
    ) -> None:
        self.failures = failures or {}
        self.delay = delay or {}
        self.encode_calls: list[bytes] = []
        self.probe_calls = 0
        self._lock = threading.Lock()

    def probe(self, data: bytes) -> ImageInfo:
        with self._lock:
            self.probe_calls += 1
        return ImageInfo(width=len(data), height=1, mode="RGB")

    def encode(self, data: bytes, parameters: EncodeParameters) -> bytes:
        with self._lock:
            self.encode_calls.append(data)
        time.sleep(self.delay.get(data, 0))
        if data in self.failures:
            raise self.failures[data]
        return parameters.format.name.encode() + b":" + data


def _converter(
    codec: _FakeCodec, *, max_workers: int = 1, **limits: int
) -> BatchConverter:
    return BatchConverter(
        FormatPolicy(),
        codec,
        ValidationLimits(
            max_file_size_bytes=limits.get("max_file_size_bytes", 1000),
            max_image_pixels=limits.get("max_image_pixels"),
        ),
        max_workers=max_workers,
    )


def _image(name: str, data: bytes, mime_type: str = "image/png") -> InputFile:
    return InputFile.from_bytes(name, data, mime_type=mime_type)


def test_every_input_gets_one_result_in_order() -> None:
    """Yield N results for N inputs, in submission order."""
    codec = _FakeCodec(failures={b"bad": CodecError("corrupt")})
    converter = _converter(codec)
    files = [
        _image("a.png", b"aaa"),
        _image("b.png", b""),
        _image("c.txt", b"ccc", mime_type="text/plain"),
        _image("d.png", b"bad"),
        _image("e.png", b"x" * 1001),
        _image("f.png", b"fff"),
    ]

    outcome = converter.convert(converter.create_request(files, "webp"))

    assert outcome.total == len(files)
    assert [item.source_name for item in outcome.results] == [f.name for f in files]
    assert [item.success for item in outcome.results] == [
        True,
        False,
        False,
        False,
        False,
        True,
    ]
    codes = [item.code for item in outcome.failures]
    assert codes == ["empty_file", "not_an_image", "codec_failure", "file_too_large"]
    assert "empty" in outcome.failures[0].message.lower()


def test_success_carries_output_name_and_mime_type() -> None:
    codec = _FakeCodec()
    converter = _converter(codec)
    outcome = converter.convert(
        converter.create_request([_image("Holiday Pic.PNG", b"px")], "jpg")
    )
    (result,) = outcome.results
    assert isinstance(result, ConversionSuccess)
    assert result.output_name == "Holiday_Pic.jpg"
    assert result.mime_type == "image/jpeg"
    assert result.data == b"jpeg:px"
    assert outcome.target_format == "jpeg"


def test_invalid_format_rejected_before_any_codec_call() -> None:
    """Reject a bad target format without touching a single file."""
    codec = _FakeCodec()
    converter = _converter(codec, max_image_pixels=10)
    files = [_image("a.png", b"aaa"), _image("b.png", b"bbb")]

    with pytest.raises(UnsupportedFormatError, match="bmp"):
        converter.create_request(files, "bmp")
    with pytest.raises(UnsupportedFormatError):
        converter.convert(ConversionRequest(files=tuple(files), target_format="bmp"))

    assert codec.encode_calls == []
    assert codec.probe_calls == 0


def test_invalid_format_wins_over_empty_batch() -> None:
    converter = _converter(_FakeCodec())
    with pytest.raises(UnsupportedFormatError):
        converter.create_request([], "bmp")
    with pytest.raises(NoFilesProvidedError):
        converter.create_request([], "png")


def test_unexpected_codec_exception_is_isolated() -> None:
    """Turn unexpected codec errors into a per-file failure."""
    codec = _FakeCodec(failures={b"boom": RuntimeError("encoder exploded")})
    converter = _converter(codec)
    outcome = converter.convert(
        converter.create_request(
            [_image("a.png", b"boom"), _image("b.png", b"ok")], "png"
        )
    )
    first, second = outcome.results
    assert isinstance(first, ConversionFailure)
    assert first.code == "codec_failure"
    assert first.message == "encoder exploded"
    assert second.success is True


def test_blank_exception_message_uses_generic_text() -> None:
    codec = _FakeCodec(failures={b"x": RuntimeError()})
    converter = _converter(codec)
    request = converter.create_request([_image("a.png", b"x")], "png")
    outcome = converter.convert(request)
    assert outcome.failures[0].message == "Failed to process this file."


def test_pixel_limit_produces_failure() -> None:
    codec = _FakeCodec()
    converter = _converter(codec, max_image_pixels=2)
    outcome = converter.convert(
        converter.create_request([_image("big.png", b"xyz")], "webp")
    )
    assert outcome.failures[0].code == "dimensions_too_large"
    assert codec.encode_calls == []


def test_parallel_conversion_preserves_order() -> None:
    """Keep submission order when later files finish first."""
    codec = _FakeCodec(delay={b"slow": 0.05})
    converter = _converter(codec, max_workers=4)
    files = [_image("slow.png", b"slow")] + [
        _image(f"{idx}.png", str(idx).encode()) for idx in range(5)
    ]
    outcome = converter.convert(converter.create_request(files, "gif"))
    assert [item.source_name for item in outcome.results] == [f.name for f in files]
    assert all(item.success for item in outcome.results)


def test_max_workers_must_be_positive() -> None:
    with pytest.raises(ValueError, match="max_workers"):
        _converter(_FakeCodec(), max_workers=0)


def test_convert_batch_builds_from_settings(settings: ConverterSettings) -> None:
    codec = _FakeCodec()
    outcome = convert_batch(
        [_image("a.png", b"a")], "WebP", settings=settings, codec=codec
    )
    assert outcome.target_format == "webp"
    assert outcome.successes[0].data == b"webp:a"
