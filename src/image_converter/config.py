"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MEBIBYTE = 1024 * 1024
DEFAULT_FORMATS = ["webp", "jpeg", "png", "avif", "gif"]
DEFAULT_MAX_IMAGE_PIXELS = 2_000_000_000


class ConverterSettings(BaseSettings):
    """Limits and per-format defaults for batch conversion.

    Every field can be overridden with an ``IMAGE_CONVERTER_``-prefixed
    environment variable, e.g. ``IMAGE_CONVERTER_MAX_FILE_SIZE_BYTES``.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_CONVERTER_",
        env_file=".env",
        extra="ignore",
    )

    max_file_size_bytes: int = Field(default=15 * MEBIBYTE, gt=0)
    max_request_size_bytes: int = Field(default=100 * MEBIBYTE, gt=0)
    max_image_pixels: int | None = Field(default=DEFAULT_MAX_IMAGE_PIXELS, gt=0)
    max_files_per_request: int = Field(default=1000, gt=0)

    supported_formats: list[str] = Field(default_factory=lambda: list(DEFAULT_FORMATS))
    default_format: str = "webp"

    webp_quality: int = Field(default=80, ge=1, le=100)
    jpeg_quality: int = Field(default=80, ge=1, le=100)
    avif_quality: int = Field(default=50, ge=0, le=100)
    png_compression_level: int = Field(default=6, ge=0, le=9)
    gif_dither: bool = False
    flatten_background: tuple[int, int, int] = (255, 255, 255)

    archive_compression_level: int = Field(default=6, ge=0, le=9)
    max_workers: int = Field(default=1, ge=1)

    @field_validator("supported_formats")
    @classmethod
    def _normalize_formats(cls, value: list[str]) -> list[str]:
        normalized = [item.strip().lower() for item in value if item.strip()]
        if not normalized:
            raise ValueError("supported_formats must contain at least one format.")
        return normalized

    @field_validator("default_format")
    @classmethod
    def _normalize_default(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("flatten_background")
    @classmethod
    def _validate_background(
        cls, value: tuple[int, int, int]
    ) -> tuple[int, int, int]:
        if any(channel < 0 or channel > 255 for channel in value):
            raise ValueError("flatten_background channels must be within 0..255.")
        return value

    @model_validator(mode="after")
    def _check_default_is_enabled(self) -> ConverterSettings:
        from image_converter.errors import UnsupportedFormatError
        from image_converter.formats import FormatPolicy

        try:
            FormatPolicy(enabled=self.supported_formats).resolve(self.default_format)
        except UnsupportedFormatError as exc:
            raise ValueError(
                f"default_format '{self.default_format}' is not enabled. "
                f"Enabled formats: {', '.join(exc.supported)}"
            ) from exc
        return self


@lru_cache(maxsize=1)
def get_settings() -> ConverterSettings:
    """Return the process-wide settings instance."""
    return ConverterSettings()
