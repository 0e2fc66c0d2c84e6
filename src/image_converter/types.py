"""Shared type aliases for converter modules."""

from __future__ import annotations

from collections.abc import Callable

type RGBColor = tuple[int, int, int]
type ByteLoader = Callable[[], bytes]
type ArchiveEntryLike = tuple[str | None, bytes | None]
