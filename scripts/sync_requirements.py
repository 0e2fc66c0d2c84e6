#!/usr/bin/env python3
"""Render requirements.txt from pyproject.toml, or check it for drift.

The file lists the base dependencies followed by the extras a full
deployment installs (CLI, HTTP service, remote client), one commented group
per source. A requirement appears only in the first group that declares it.
"""

from __future__ import annotations

import argparse
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
REQUIREMENTS = ROOT / "requirements.txt"
DEPLOY_EXTRAS = ("cli", "server", "client")
HEADER = "# Generated from pyproject.toml; run: python scripts/sync_requirements.py"


def requirement_groups() -> list[tuple[str, list[str]]]:
    """Return ``(label, requirements)`` pairs in install order."""
    text = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    project = tomllib.loads(text)["project"]
    optional = project.get("optional-dependencies", {})
    sources = [("base", project.get("dependencies", []))]
    sources.extend((f"extra: {name}", optional.get(name, [])) for name in DEPLOY_EXTRAS)

    seen: set[str] = set()
    groups: list[tuple[str, list[str]]] = []
    for label, declared in sources:
        fresh = sorted({dep.strip() for dep in declared if dep.strip()} - seen)
        seen.update(fresh)
        if fresh:
            groups.append((label, fresh))
    return groups


def render() -> str:
    lines = [HEADER]
    for label, requirements in requirement_groups():
        lines.extend(["", f"# {label}", *requirements])
    return "\n".join(lines) + "\n"


def _entries(text: str) -> set[str]:
    return {
        entry
        for entry in (line.split("#", 1)[0].strip() for line in text.splitlines())
        if entry
    }


def check(expected: str) -> None:
    """Exit non-zero with a readable diff when requirements.txt is stale."""
    current = REQUIREMENTS.read_text(encoding="utf-8") if REQUIREMENTS.exists() else ""
    if current == expected:
        print("Dependency sync check passed.")
        return
    parts = [
        "requirements.txt is out of sync with pyproject.toml.",
        "Run: python scripts/sync_requirements.py",
    ]
    wanted, actual = _entries(expected), _entries(current)
    if missing := sorted(wanted - actual):
        parts.append("Missing from requirements.txt:")
        parts.extend(f"- {entry}" for entry in missing)
    if unexpected := sorted(actual - wanted):
        parts.append("Unexpected in requirements.txt:")
        parts.extend(f"- {entry}" for entry in unexpected)
    if not missing and not unexpected:
        parts.append("Entries match; grouping or ordering differs.")
    raise SystemExit("\n".join(parts))


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--check",
        action="store_true",
        help="Fail instead of rewriting when requirements.txt is stale.",
    )
    args = parser.parse_args()

    expected = render()
    if args.check:
        check(expected)
        return
    REQUIREMENTS.write_text(expected, encoding="utf-8")
    count = len(_entries(expected))
    print(f"Wrote {count} requirements to {REQUIREMENTS.relative_to(ROOT)}")


if __name__ == "__main__":
    main()
