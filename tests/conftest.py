"""Shared pytest configuration, marker assignment and image fixtures."""

from __future__ import annotations

from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from image_converter.config import ConverterSettings

ImageFactory = Callable[..., bytes]


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Attach suite markers based on test file path."""
    del config
    for item in items:
        path = Path(str(item.fspath))
        parts = set(path.parts)
        if "e2e_tests" in parts:
            item.add_marker(pytest.mark.e2e)
        elif "integration_tests" in parts:
            item.add_marker(pytest.mark.integration)
        elif "unit_tests" in parts:
            item.add_marker(pytest.mark.unit)


def _render_image(
    fmt: str = "PNG",
    *,
    mode: str = "RGB",
    size: tuple[int, int] = (8, 6),
    color: tuple[int, ...] | int = (200, 30, 30),
) -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image() -> ImageFactory:
    """Return a factory rendering a solid-colour image to encoded bytes."""
    return _render_image


@pytest.fixture
def png_bytes() -> bytes:
    return _render_image("PNG")


@pytest.fixture
def settings() -> ConverterSettings:
    """Settings isolated from the process environment."""
    return ConverterSettings(_env_file=None)


@pytest.fixture(autouse=True)
def _restore_pillow_pixel_guard(monkeypatch: pytest.MonkeyPatch) -> None:
    """Undo codec changes to Pillow's process-wide pixel guard."""
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", Image.MAX_IMAGE_PIXELS)
