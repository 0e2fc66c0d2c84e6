"""Application-layer use-cases and option objects."""

from __future__ import annotations

from collections.abc import Iterable

from image_converter.application.options import ImageInfo, ValidationLimits
from image_converter.application.ports import (
    ArchivePackager,
    ArchiveProgress,
    BatchRunner,
    ImageCodec,
)
from image_converter.application.requests import ConversionRequest, InputFile
from image_converter.application.results import (
    BatchOutcome,
    ConversionFailure,
    ConversionResult,
    ConversionSuccess,
)
from image_converter.config import ConverterSettings


def convert_batch(
    files: Iterable[InputFile],
    target_format: str,
    *,
    settings: ConverterSettings | None = None,
    codec: ImageCodec | None = None,
) -> BatchOutcome:
    """Convert a batch of files via lazy use-case import."""
    from image_converter.application.use_cases import convert_batch as _impl

    return _impl(files, target_format, settings=settings, codec=codec)


__all__ = [
    "ArchivePackager",
    "ArchiveProgress",
    "BatchOutcome",
    "BatchRunner",
    "ConversionFailure",
    "ConversionRequest",
    "ConversionResult",
    "ConversionSuccess",
    "ImageCodec",
    "ImageInfo",
    "InputFile",
    "ValidationLimits",
    "convert_batch",
]
