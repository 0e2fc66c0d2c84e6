"""Batch image conversion to WebP, JPEG, PNG, AVIF and GIF."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .application.results import BatchOutcome

__version__ = "0.1.0"


def convert_files(
    paths: Iterable[Path],
    target_format: str = "webp",
) -> BatchOutcome:
    """Convert local image files in-process.

    Parameters
    ----------
    paths : Iterable[Path]
        Source image paths.
    target_format : str, default="webp"
        Output format name (``jpg`` is accepted for ``jpeg``).

    Returns
    -------
    BatchOutcome
        One result per path, in the given order.
    """
    from .api import convert_files as _impl

    return _impl(paths, target_format)


def package_outputs(outcome: BatchOutcome, compression_level: int = 6) -> bytes:
    """Bundle the successful outputs of a batch into ZIP bytes."""
    from .api import package_outputs as _impl

    return _impl(outcome, compression_level=compression_level)


__all__ = ["__version__", "convert_files", "package_outputs"]
