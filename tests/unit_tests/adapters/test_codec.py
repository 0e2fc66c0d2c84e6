"""Unit tests for the Pillow codec adapter."""

from __future__ import annotations

from io import BytesIO
from typing import Any

import pytest
from PIL import Image

from image_converter.adapters.codec import PillowImageCodec, coerce_mode, flatten_alpha
from image_converter.errors import (
    CodecError,
    DimensionsTooLargeError,
    MetadataUnreadableError,
)
from image_converter.formats import EncodeParameters, FormatPolicy


def _decode(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image


@pytest.mark.parametrize(
    ("target", "pil_format"),
    [("webp", "WEBP"), ("jpeg", "JPEG"), ("png", "PNG"), ("gif", "GIF")],
)
def test_encode_produces_target_format(
    make_image: Any, target: str, pil_format: str
) -> None:
    """Decode the encoded output as the requested format."""
    parameters = FormatPolicy().parameters_for(target)
    output = PillowImageCodec().encode(make_image("PNG"), parameters)
    image = _decode(output)
    assert image.format == pil_format
    assert image.size == (8, 6)


def test_encode_avif_when_available(make_image: Any) -> None:
    codec = PillowImageCodec()
    parameters = FormatPolicy().parameters_for("avif")
    if not codec.can_encode(parameters.format):
        pytest.skip("Pillow build without AVIF support")
    assert _decode(codec.encode(make_image("PNG"), parameters)).format == "AVIF"


def test_jpeg_flattens_transparency_onto_white(make_image: Any) -> None:
    """Composite transparent pixels onto white before JPEG encoding."""
    source = make_image("PNG", mode="RGBA", color=(255, 0, 0, 0))
    output = PillowImageCodec().encode(source, FormatPolicy().parameters_for("jpg"))
    image = _decode(output)
    assert image.mode == "RGB"
    red, green, blue = image.getpixel((3, 3))
    assert min(red, green, blue) >= 245


def test_jpeg_uses_configured_background(make_image: Any) -> None:
    source = make_image("PNG", mode="RGBA", color=(0, 0, 0, 0))
    parameters = FormatPolicy(background=(0, 0, 255)).parameters_for("jpeg")
    output = PillowImageCodec().encode(source, parameters)
    red, green, blue = _decode(output).getpixel((0, 0))
    assert blue > 200
    assert red < 40
    assert green < 40


def test_png_keeps_alpha(make_image: Any) -> None:
    source = make_image("PNG", mode="RGBA", color=(10, 20, 30, 128))
    output = PillowImageCodec().encode(source, FormatPolicy().parameters_for("png"))
    image = _decode(output)
    assert image.mode == "RGBA"
    assert image.getpixel((0, 0))[3] == 128


def test_webp_converts_unsupported_modes(make_image: Any) -> None:
    source = make_image("PNG", mode="L", color=90)
    output = PillowImageCodec().encode(source, FormatPolicy().parameters_for("webp"))
    assert _decode(output).format == "WEBP"


def test_gif_with_dither(make_image: Any) -> None:
    parameters = FormatPolicy(gif_dither=True).parameters_for("gif")
    output = PillowImageCodec().encode(make_image("JPEG"), parameters)
    assert _decode(output).mode == "P"


def test_encode_corrupt_data_raises_codec_error() -> None:
    with pytest.raises(CodecError, match="Unsupported or corrupt"):
        PillowImageCodec().encode(b"not an image", FormatPolicy().parameters_for("png"))


def test_encode_unavailable_format_raises(
    monkeypatch: pytest.MonkeyPatch, png_bytes: bytes
) -> None:
    codec = PillowImageCodec()
    monkeypatch.setattr(codec, "can_encode", lambda spec: False)
    with pytest.raises(CodecError, match="not available"):
        codec.encode(png_bytes, FormatPolicy().parameters_for("webp"))


def test_custom_encoder_dispatch(png_bytes: bytes) -> None:
    """Route encoding through the encoder registered for the format."""
    seen: list[str] = []

    def fake_encoder(
        image: Image.Image, parameters: EncodeParameters, out: BytesIO
    ) -> None:
        seen.append(parameters.format.name)
        out.write(b"custom")

    codec = PillowImageCodec(encoders={"png": fake_encoder})
    assert codec.encode(png_bytes, FormatPolicy().parameters_for("png")) == b"custom"
    assert seen == ["png"]


def test_probe_reads_dimensions(make_image: Any) -> None:
    info = PillowImageCodec().probe(make_image("GIF", mode="P", size=(5, 7), color=1))
    assert (info.width, info.height) == (5, 7)
    assert info.format == "GIF"
    assert info.pixels == 35


def test_probe_rejects_garbage() -> None:
    with pytest.raises(MetadataUnreadableError):
        PillowImageCodec().probe(b"\x00\x01garbage")


def test_decompression_bomb_maps_to_dimensions_error(png_bytes: bytes) -> None:
    codec = PillowImageCodec(max_image_pixels=10)
    with pytest.raises(DimensionsTooLargeError):
        codec.probe(png_bytes)
    with pytest.raises(DimensionsTooLargeError):
        codec.encode(png_bytes, FormatPolicy().parameters_for("webp"))


def test_probe_enforces_configured_pixel_limit(make_image: Any) -> None:
    """Reject images over the ceiling even below Pillow's own raise point."""
    codec = PillowImageCodec(max_image_pixels=40)
    assert Image.MAX_IMAGE_PIXELS == 40
    assert codec.probe(make_image("PNG", size=(5, 8))).pixels == 40
    with pytest.raises(DimensionsTooLargeError, match="5x9"):
        codec.probe(make_image("PNG", size=(5, 9)))


def test_configured_limit_replaces_pillow_default(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 89_478_485)
    PillowImageCodec()
    assert Image.MAX_IMAGE_PIXELS == 2_000_000_000

    PillowImageCodec(max_image_pixels=None)
    assert Image.MAX_IMAGE_PIXELS is None


def test_flatten_alpha_and_coerce_mode() -> None:
    transparent = Image.new("LA", (2, 2), (0, 0))
    flattened = flatten_alpha(transparent, (255, 255, 255))
    assert flattened.mode == "RGB"
    assert flattened.getpixel((0, 0)) == (255, 255, 255)

    jpeg = FormatPolicy().resolve("jpeg")
    assert coerce_mode(Image.new("RGB", (1, 1)), jpeg).mode == "RGB"
    assert coerce_mode(Image.new("P", (1, 1)), jpeg).mode == "RGB"
