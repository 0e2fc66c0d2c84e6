"""Typed option objects shared across conversion use-cases."""

from __future__ import annotations

from dataclasses import dataclass

from image_converter.config import ConverterSettings


@dataclass(frozen=True)
class ValidationLimits:
    """Per-file limits checked before conversion."""

    max_file_size_bytes: int
    max_image_pixels: int | None = None

    @classmethod
    def from_settings(cls, settings: ConverterSettings) -> ValidationLimits:
        return cls(
            max_file_size_bytes=settings.max_file_size_bytes,
            max_image_pixels=settings.max_image_pixels,
        )


@dataclass(frozen=True)
class ImageInfo:
    """Header metadata read without decoding pixels."""

    width: int
    height: int
    mode: str
    format: str | None = None

    @property
    def pixels(self) -> int:
        return self.width * self.height
