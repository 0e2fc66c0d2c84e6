"""Batch request objects."""

from __future__ import annotations

import mimetypes
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from image_converter.errors import NoFilesProvidedError
from image_converter.types import ByteLoader

UNKNOWN_FILE_NAME = "Unknown file"


@dataclass(frozen=True)
class InputFile:
    """One user-selected file.

    Content is read lazily through ``loader`` so size and type checks can
    reject a file without touching its bytes.
    """

    name: str
    byte_size: int
    declared_mime_type: str
    loader: ByteLoader = field(repr=False, compare=False)
    modified: float | None = None

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        mime_type: str | None = None,
    ) -> InputFile:
        """Build an input file from in-memory content."""
        declared = mime_type if mime_type is not None else guess_mime_type(name)
        return cls(
            name=name or UNKNOWN_FILE_NAME,
            byte_size=len(data),
            declared_mime_type=declared,
            loader=lambda: data,
        )

    @classmethod
    def from_path(cls, path: Path) -> InputFile:
        """Build an input file backed by a local path."""
        stat = path.stat()
        return cls(
            name=path.name,
            byte_size=stat.st_size,
            declared_mime_type=guess_mime_type(path.name),
            loader=path.read_bytes,
            modified=stat.st_mtime,
        )

    def read(self) -> bytes:
        """Read file content."""
        return self.loader()

    @property
    def identity(self) -> tuple[str, int, float | None]:
        """Key used to de-duplicate repeated selections of the same file."""
        return (self.name, self.byte_size, self.modified)


@dataclass(frozen=True)
class ConversionRequest:
    """Ordered batch of files and the requested output format."""

    files: tuple[InputFile, ...]
    target_format: str

    @classmethod
    def create(
        cls, files: Iterable[InputFile], target_format: str
    ) -> ConversionRequest:
        """Build a request, rejecting empty batches.

        Raises
        ------
        NoFilesProvidedError
            If ``files`` is empty.
        """
        batch = tuple(files)
        if not batch:
            raise NoFilesProvidedError()
        return cls(files=batch, target_format=target_format)


def guess_mime_type(name: str) -> str:
    """Guess a MIME type from a file name, empty when unknown."""
    guessed, _ = mimetypes.guess_type(name)
    return guessed or ""
