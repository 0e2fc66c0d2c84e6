"""Application ports for clean architecture boundaries."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from image_converter.application.options import ImageInfo
from image_converter.application.requests import ConversionRequest, InputFile
from image_converter.application.results import BatchOutcome
from image_converter.formats import EncodeParameters
from image_converter.types import ArchiveEntryLike


class ImageCodec(Protocol):
    """Decode source bytes and re-encode them in a target format."""

    def probe(self, data: bytes) -> ImageInfo:
        """Read dimensions and mode from the image header."""

    def encode(self, data: bytes, parameters: EncodeParameters) -> bytes:
        """Return ``data`` re-encoded according to ``parameters``."""


@dataclass(frozen=True)
class ArchiveProgress:
    """Best-effort archive progress snapshot."""

    fraction: float
    current_name: str | None


type ProgressCallback = Callable[[ArchiveProgress], None]


class ArchivePackager(Protocol):
    """Bundle named outputs into one downloadable archive."""

    def package(
        self,
        entries: Sequence[ArchiveEntryLike],
        on_progress: ProgressCallback | None = None,
    ) -> bytes:
        """Return archive bytes containing every usable entry."""


class BatchRunner(Protocol):
    """Run a whole batch, in-process or against a remote service."""

    def create_request(
        self, files: Iterable[InputFile], target_format: str
    ) -> ConversionRequest:
        """Validate request-level inputs and build a request."""

    def convert(self, request: ConversionRequest) -> BatchOutcome:
        """Convert every file of ``request``; one result per file."""
