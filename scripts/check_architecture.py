#!/usr/bin/env python3
"""Layering checks: the application core stays free of transports and Pillow."""

from __future__ import annotations

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
PACKAGE = ROOT / "src" / "image_converter"

# Top-level modules each layer must not import.
BANNED: dict[str, tuple[str, ...]] = {
    "application": ("PIL", "fastapi", "starlette", "httpx", "typer", "uvicorn"),
    "adapters": ("fastapi", "starlette", "httpx", "typer", "uvicorn"),
    "formats.py": ("PIL", "fastapi", "typer"),
    "service/core.py": ("fastapi", "starlette", "PIL"),
}


def _imported_roots(path: Path) -> set[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    roots: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            roots.update(alias.name.split(".")[0] for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and not node.level:
            roots.add(node.module.split(".")[0])
    return roots


def main() -> None:
    violations: list[str] = []
    for target, banned in BANNED.items():
        location = PACKAGE / target
        paths = sorted(location.glob("*.py")) if location.is_dir() else [location]
        for path in paths:
            found = _imported_roots(path) & set(banned)
            if found:
                rel = path.relative_to(ROOT)
                violations.append(f"{rel}: imports {', '.join(sorted(found))}")
    if violations:
        raise SystemExit(
            "Architecture violations:\n" + "\n".join(f"- {v}" for v in violations)
        )
    print("Architecture checks passed.")


if __name__ == "__main__":
    main()
