"""Infrastructure adapters for the image library and archive writer."""

from .archive import ZipArchivePackager, archive_name
from .codec import PillowImageCodec

__all__ = ["PillowImageCodec", "ZipArchivePackager", "archive_name"]
