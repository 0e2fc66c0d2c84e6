"""Pillow-backed image codec adapter."""

from __future__ import annotations

from collections.abc import Callable
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from image_converter.application.options import ImageInfo
from image_converter.config import DEFAULT_MAX_IMAGE_PIXELS
from image_converter.errors import (
    CodecError,
    DimensionsTooLargeError,
    MetadataUnreadableError,
)
from image_converter.formats import EncodeParameters, FormatSpec
from image_converter.types import RGBColor

type Encoder = Callable[[Image.Image, EncodeParameters, BytesIO], None]


def flatten_alpha(image: Image.Image, background: RGBColor) -> Image.Image:
    """Composite ``image`` onto an opaque background colour."""
    rgba = image.convert("RGBA")
    canvas = Image.new("RGB", rgba.size, background)
    canvas.paste(rgba, mask=rgba.getchannel("A"))
    return canvas


def coerce_mode(image: Image.Image, spec: FormatSpec) -> Image.Image:
    """Convert ``image`` to a mode the target encoder can write."""
    if not spec.writable_modes or image.mode in spec.writable_modes:
        return image
    target = "RGBA" if spec.supports_alpha and image.has_transparency_data else "RGB"
    return image.convert(target)


def _encode_jpeg(
    image: Image.Image, parameters: EncodeParameters, out: BytesIO
) -> None:
    # JPEG has no alpha channel.
    if parameters.flatten_alpha and image.has_transparency_data:
        image = flatten_alpha(image, parameters.background)
    image = coerce_mode(image, parameters.format)
    image.save(out, format=parameters.format.pil_format, quality=parameters.quality)


def _encode_png(
    image: Image.Image, parameters: EncodeParameters, out: BytesIO
) -> None:
    image = coerce_mode(image, parameters.format)
    save_kwargs: dict[str, int] = {}
    if parameters.compression_level is not None:
        save_kwargs["compress_level"] = parameters.compression_level
    image.save(out, format=parameters.format.pil_format, **save_kwargs)


def _encode_lossy(
    image: Image.Image, parameters: EncodeParameters, out: BytesIO
) -> None:
    image = coerce_mode(image, parameters.format)
    save_kwargs: dict[str, int] = {}
    if parameters.quality is not None:
        save_kwargs["quality"] = parameters.quality
    image.save(out, format=parameters.format.pil_format, **save_kwargs)


def _encode_gif(
    image: Image.Image, parameters: EncodeParameters, out: BytesIO
) -> None:
    if parameters.dither and image.mode != "P":
        image = image.convert("RGBA").quantize(
            method=Image.Quantize.FASTOCTREE,
            dither=Image.Dither.FLOYDSTEINBERG,
        )
    image = coerce_mode(image, parameters.format)
    image.save(out, format=parameters.format.pil_format)


def _encode_generic(
    image: Image.Image, parameters: EncodeParameters, out: BytesIO
) -> None:
    image = coerce_mode(image, parameters.format)
    image.save(out, format=parameters.format.pil_format)


DEFAULT_ENCODERS: dict[str, Encoder] = {
    "jpeg": _encode_jpeg,
    "png": _encode_png,
    "webp": _encode_lossy,
    "avif": _encode_lossy,
    "gif": _encode_gif,
}


class PillowImageCodec:
    """Decode and re-encode images with Pillow.

    Encoders are looked up by canonical format name; formats without a
    dedicated encoder are saved with their Pillow format id and no options.

    Parameters
    ----------
    encoders : dict, optional
        Encoder per canonical format name.
    max_image_pixels : int or None
        Pixel ceiling enforced by :meth:`probe`. Pillow's decompression-bomb
        guard is process-wide and is set to the same value, so the
        configured ceiling is the one that applies; ``None`` disables both.
    """

    def __init__(
        self,
        encoders: dict[str, Encoder] | None = None,
        *,
        max_image_pixels: int | None = DEFAULT_MAX_IMAGE_PIXELS,
    ) -> None:
        self._encoders = dict(DEFAULT_ENCODERS if encoders is None else encoders)
        self.max_image_pixels = max_image_pixels
        Image.MAX_IMAGE_PIXELS = max_image_pixels

    def can_encode(self, spec: FormatSpec) -> bool:
        """Return whether the installed Pillow build can write ``spec``."""
        Image.init()
        return spec.pil_format.upper() in Image.SAVE

    def probe(self, data: bytes) -> ImageInfo:
        """Read image dimensions from the header without decoding pixels.

        Raises
        ------
        DimensionsTooLargeError
            If the image exceeds ``max_image_pixels``.
        MetadataUnreadableError
            If the header cannot be parsed.
        """
        try:
            with Image.open(BytesIO(data)) as image:
                info = ImageInfo(
                    width=image.width,
                    height=image.height,
                    mode=image.mode,
                    format=image.format,
                )
        except Image.DecompressionBombError as exc:
            raise DimensionsTooLargeError(str(exc)) from exc
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise MetadataUnreadableError(
                f"Could not read image metadata: {exc}"
            ) from exc
        limit = self.max_image_pixels
        if limit is not None and info.pixels > limit:
            raise DimensionsTooLargeError.for_size(info.width, info.height, limit)
        return info

    def encode(self, data: bytes, parameters: EncodeParameters) -> bytes:
        """Re-encode ``data`` into the target format.

        Raises
        ------
        CodecError
            If decoding or encoding fails, or the format is unavailable.
        DimensionsTooLargeError
            If Pillow's decompression-bomb guard rejects the image.
        """
        spec = parameters.format
        if not self.can_encode(spec):
            raise CodecError(
                f"{spec.name} encoding is not available in this Pillow build."
            )
        encoder = self._encoders.get(spec.name, _encode_generic)
        out = BytesIO()
        try:
            with Image.open(BytesIO(data)) as image:
                image.load()
                encoder(image, parameters, out)
        except Image.DecompressionBombError as exc:
            raise DimensionsTooLargeError(str(exc)) from exc
        except UnidentifiedImageError as exc:
            raise CodecError("Unsupported or corrupt image data.") from exc
        except (OSError, ValueError) as exc:
            raise CodecError(f"Could not convert image: {exc}") from exc
        return out.getvalue()
