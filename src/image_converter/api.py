"""Public in-process conversion API (delegates to application use-cases)."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable
from typing import Optional

from image_converter.adapters.archive import ZipArchivePackager
from image_converter.application.requests import InputFile
from image_converter.application.results import BatchOutcome
from image_converter.application.use_cases import convert_batch
from image_converter.config import ConverterSettings
from image_converter.service.core import download_items


def convert_files(
    paths: Iterable[Path],
    target_format: str = "webp",
    settings: Optional[ConverterSettings] = None,
) -> BatchOutcome:
    """Convert local image files and keep the outputs in memory."""
    files = [InputFile.from_path(Path(path)) for path in paths]
    return convert_batch(files, target_format, settings=settings)


def convert_bytes(
    items: Iterable[tuple[str, bytes]],
    target_format: str = "webp",
    settings: Optional[ConverterSettings] = None,
) -> BatchOutcome:
    """Convert ``(name, content)`` pairs; MIME types are guessed from names."""
    files = [InputFile.from_bytes(name, data) for name, data in items]
    return convert_batch(files, target_format, settings=settings)


def package_outputs(outcome: BatchOutcome, compression_level: int = 6) -> bytes:
    """Bundle successful outputs of ``outcome`` into a ZIP archive."""
    return ZipArchivePackager(compression_level).package(download_items(outcome))
