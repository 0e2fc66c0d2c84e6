"""Exception hierarchy for image batch conversion.

Every error carries a stable ``code`` so transports can map errors to
responses without inspecting messages.
"""

from __future__ import annotations


class ImageConverterError(Exception):
    """Base class for all converter errors."""

    code = "converter_error"
    exit_code = 1


# -----------------------------
# Request-level errors
# -----------------------------
class RequestError(ImageConverterError):
    """Reject a whole batch before any file is processed."""

    code = "bad_request"
    status_code = 400


class UnsupportedFormatError(RequestError):
    """Requested output format is not in the enabled format table."""

    code = "unsupported_format"

    def __init__(self, requested: str, supported: list[str]) -> None:
        self.requested = requested
        self.supported = supported
        super().__init__(
            f"Invalid output format '{requested}'. "
            f"Supported formats: {', '.join(supported)}"
        )


class NoFilesProvidedError(RequestError):
    """Batch contains no files."""

    code = "no_files"

    def __init__(self, message: str = "No files uploaded.") -> None:
        super().__init__(message)


class RequestTooLargeError(RequestError):
    """Request body exceeds the configured ceiling."""

    code = "request_too_large"
    status_code = 413

    def __init__(self, limit_bytes: int) -> None:
        self.limit_bytes = limit_bytes
        super().__init__(
            f"Request body exceeds limit ({format_megabytes(limit_bytes)} MB)."
        )


class MalformedRequestError(RequestError):
    """Multipart body could not be parsed."""

    code = "malformed_request"


# -----------------------------
# Per-file errors
# -----------------------------
class FileConversionError(ImageConverterError):
    """Failure isolated to a single file of a batch."""

    code = "file_error"


class EmptyFileError(FileConversionError):
    code = "empty_file"

    def __init__(self) -> None:
        super().__init__("File is empty.")


class NotAnImageError(FileConversionError):
    code = "not_an_image"

    def __init__(self, mime_type: str) -> None:
        self.mime_type = mime_type
        super().__init__(
            f"Invalid file type (not an image): {mime_type or 'unknown'}."
        )


class FileTooLargeError(FileConversionError):
    code = "file_too_large"

    def __init__(self, size_bytes: int, limit_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        actual = format_megabytes(size_bytes)
        limit = format_megabytes(limit_bytes)
        super().__init__(f"File size exceeds limit ({actual} MB > {limit} MB).")


class DimensionsTooLargeError(FileConversionError):
    code = "dimensions_too_large"

    @classmethod
    def for_size(
        cls, width: int, height: int, limit_pixels: int
    ) -> DimensionsTooLargeError:
        return cls(
            f"Image dimensions {width}x{height} exceed the pixel limit "
            f"({limit_pixels} pixels)."
        )


class MetadataUnreadableError(FileConversionError):
    code = "metadata_unreadable"


class CodecError(FileConversionError):
    """The image library failed to decode or encode a file."""

    code = "codec_failure"


# -----------------------------
# Other errors
# -----------------------------
class ArchiveError(ImageConverterError):
    """Archive could not be produced; no partial archive is returned."""

    code = "archive_failure"


class SessionStateError(ImageConverterError):
    """Operation is not allowed in the session's current state."""

    code = "invalid_state"


class RemoteConversionError(ImageConverterError):
    """Remote conversion service rejected the request or was unreachable."""

    code = "remote_failure"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


def format_megabytes(size_bytes: int) -> str:
    """Render a byte count as megabytes with two decimals."""
    return f"{size_bytes / (1024 * 1024):.2f}"
