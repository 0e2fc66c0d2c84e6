"""Deterministic output naming."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from image_converter.formats import FormatSpec

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
FALLBACK_BASE_NAME = "image"


def source_base_name(filename: str) -> str:
    """Return the basename of ``filename`` without its extension."""
    # Normalize Windows-style separators before basename extraction.
    normalized = filename.strip().replace("\\", "/")
    return PurePosixPath(normalized).stem


def sanitize_base_name(base_name: str) -> str:
    """Replace characters outside ``[A-Za-z0-9_-]`` with underscores."""
    sanitized = _UNSAFE_CHARS.sub("_", base_name)
    return sanitized or FALLBACK_BASE_NAME


def build_output_name(source_name: str, spec: FormatSpec) -> str:
    """Build the output file name for a converted source file.

    >>> from image_converter.formats import BUILTIN_FORMATS
    >>> build_output_name("My Photo #1.PNG", BUILTIN_FORMATS[0])
    'My_Photo__1.webp'
    """
    return f"{sanitize_base_name(source_base_name(source_name))}.{spec.extension}"
