#!/usr/bin/env python3
"""Convert every image in a folder and bundle the results into one ZIP."""

from __future__ import annotations

import argparse
from pathlib import Path

from image_converter import convert_files, package_outputs
from image_converter.adapters.archive import archive_name
from image_converter.application.notifications import summarize

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".avif", ".bmp", ".tiff"}


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("folder", type=Path)
    parser.add_argument("--format", default="webp")
    parser.add_argument("--output", type=Path, default=Path("."))
    args = parser.parse_args()

    paths = sorted(
        path for path in args.folder.iterdir() if path.suffix.lower() in IMAGE_SUFFIXES
    )
    if not paths:
        raise SystemExit(f"No images found in {args.folder}")

    outcome = convert_files(paths, target_format=args.format)
    notification = summarize(outcome)
    print(f"{notification.title} {notification.message}")
    for detail in notification.details:
        print(f"  - {detail}")

    if outcome.successes:
        args.output.mkdir(parents=True, exist_ok=True)
        target = args.output / archive_name(outcome.target_format)
        target.write_bytes(package_outputs(outcome))
        print(f"Saved: {target}")


if __name__ == "__main__":
    main()
