"""Per-file validation run before any conversion work."""

from __future__ import annotations

from image_converter.application.options import ImageInfo, ValidationLimits
from image_converter.application.ports import ImageCodec
from image_converter.application.requests import InputFile
from image_converter.errors import (
    DimensionsTooLargeError,
    EmptyFileError,
    FileTooLargeError,
    MetadataUnreadableError,
    NotAnImageError,
)


class FileValidator:
    """Reject unusable inputs before they reach the codec.

    Parameters
    ----------
    limits : ValidationLimits
        Size and pixel ceilings.
    codec : ImageCodec
        Codec used to read image headers for the pixel-count check.
    """

    def __init__(self, limits: ValidationLimits, codec: ImageCodec) -> None:
        self.limits = limits
        self.codec = codec

    def check_file(self, file: InputFile) -> None:
        """Run checks that need only file metadata.

        Raises
        ------
        EmptyFileError
            If the file has no content.
        NotAnImageError
            If the declared MIME type is not ``image/*``.
        FileTooLargeError
            If the file exceeds ``max_file_size_bytes``.
        """
        if file.byte_size == 0:
            raise EmptyFileError()
        if not file.declared_mime_type.startswith("image/"):
            raise NotAnImageError(file.declared_mime_type)
        if file.byte_size > self.limits.max_file_size_bytes:
            raise FileTooLargeError(file.byte_size, self.limits.max_file_size_bytes)

    def check_dimensions(self, data: bytes) -> ImageInfo | None:
        """Probe the header and enforce the pixel ceiling when configured.

        Raises
        ------
        MetadataUnreadableError
            If the header cannot be read.
        DimensionsTooLargeError
            If ``width * height`` exceeds ``max_image_pixels``.
        """
        limit = self.limits.max_image_pixels
        if limit is None:
            return None
        try:
            info = self.codec.probe(data)
        except (MetadataUnreadableError, DimensionsTooLargeError):
            raise
        except Exception as exc:
            raise MetadataUnreadableError(
                f"Could not read image metadata: {exc}"
            ) from exc
        if info.pixels > limit:
            raise DimensionsTooLargeError.for_size(info.width, info.height, limit)
        return info
