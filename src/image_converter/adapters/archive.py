"""ZIP archive adapter for converted outputs."""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Sequence
from io import BytesIO

from image_converter.application.ports import ArchiveProgress, ProgressCallback
from image_converter.errors import ArchiveError
from image_converter.types import ArchiveEntryLike

logger = logging.getLogger(__name__)


def archive_name(target_format: str) -> str:
    """Return the download name of a batch archive."""
    return f"converted_images_{target_format}.zip"


class ZipArchivePackager:
    """Build an in-memory DEFLATE ZIP from named outputs.

    Parameters
    ----------
    compression_level : int, default=6
        zlib compression level (0-9).
    """

    def __init__(self, compression_level: int = 6) -> None:
        if not 0 <= compression_level <= 9:
            raise ValueError("compression_level must be within 0..9")
        self.compression_level = compression_level

    def package(
        self,
        entries: Sequence[ArchiveEntryLike],
        on_progress: ProgressCallback | None = None,
    ) -> bytes:
        """Return ZIP bytes containing every entry with a name and content.

        Entries missing a name or bytes are skipped. Either the whole archive
        is returned or ``ArchiveError`` is raised.

        Raises
        ------
        ArchiveError
            If the archive cannot be built.
        """
        usable = [(name, data) for name, data in entries if name and data is not None]
        skipped = len(entries) - len(usable)
        if skipped:
            logger.warning(
                "skipping %d archive entr(ies) without name or data", skipped
            )

        buffer = BytesIO()
        try:
            with zipfile.ZipFile(
                buffer,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
            ) as archive:
                for index, (name, data) in enumerate(usable, start=1):
                    archive.writestr(name, data)
                    if on_progress is not None:
                        on_progress(ArchiveProgress(index / len(usable), name))
        except Exception as exc:
            raise ArchiveError(f"Could not create ZIP: {exc}") from exc
        if on_progress is not None and not usable:
            on_progress(ArchiveProgress(1.0, None))
        return buffer.getvalue()
