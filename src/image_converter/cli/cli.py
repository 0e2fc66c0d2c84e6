#!/usr/bin/env python3
"""
image_converter.cli.cli

Typer-based CLI for converting batches of images.

Conversion runs in-process by default; ``--server`` sends the batch to a
running ``image-converter-http`` instance instead.

Examples
--------
Install core + CLI only:

    uv pip install -e ".[cli]"

Convert through a remote service:

    uv pip install -e ".[cli,client]"
    image-converter convert photos/*.png -f avif --server http://localhost:8090
"""

from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path

import typer

from image_converter.application.notifications import NotificationKind, summarize
from image_converter.application.options import ValidationLimits
from image_converter.application.ports import ArchiveProgress, BatchRunner
from image_converter.application.requests import InputFile
from image_converter.application.results import BatchOutcome
from image_converter.application.session import ConversionSession
from image_converter.config import get_settings
from image_converter.errors import ImageConverterError

app = typer.Typer(
    name="image-converter",
    help="Convert batches of images to WebP, JPEG, PNG, AVIF or GIF.",
    no_args_is_help=True,
)

DOCTOR_MODULES = [
    "pillow",
    "pydantic",
    "pydantic-settings",
    "fastapi",
    "python-multipart",
    "uvicorn",
    "httpx",
    "typer",
]


def _print_conversion_error(exc: Exception, debug: bool) -> int:
    """Print a user-friendly conversion error.

    Parameters
    ----------
    exc : Exception
        Exception raised during conversion.
    debug : bool
        Whether to include traceback details.

    Returns
    -------
    int
        Process exit code.
    """
    typer.echo(f"✗ {type(exc).__name__}: {exc}", err=True)
    if debug:
        typer.echo("\nTraceback:", err=True)
        typer.echo(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            err=True,
        )
    code = getattr(exc, "exit_code", None)
    if isinstance(code, int) and code > 0:
        return code
    return 1


def _build_runner(server: str | None) -> BatchRunner:
    if server is None:
        from image_converter.application.use_cases import BatchConverter

        return BatchConverter.from_settings(get_settings())
    try:
        from image_converter.client import RemoteConverter
    except ModuleNotFoundError as exc:
        raise typer.BadParameter(
            "--server requires httpx. Install extra: .[client]"
        ) from exc
    return RemoteConverter(server)


def _write_outputs(outcome: BatchOutcome, output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for item in outcome.successes:
        target = output_dir / item.output_name
        if target in written:
            typer.echo(
                f"! {item.source_name} overwrites {target} from this batch", err=True
            )
        target.write_bytes(item.data)
        written.append(target)
    return written


def _echo_progress(progress: ArchiveProgress) -> None:
    percent = int(progress.fraction * 100)
    typer.echo(f"  zipping {percent:3d}% {progress.current_name or ''}")


# -----------------------------
# Global options
# -----------------------------
@app.callback()
def _main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Show full tracebacks on error."),
) -> None:
    """Initialize shared CLI state.

    Parameters
    ----------
    ctx : typer.Context
        Typer context object used to store shared state.
    debug : bool, default=False
        Whether to enable debug error output.
    """
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING)
    ctx.obj = {"debug": debug}


# -----------------------------
# Commands
# -----------------------------
@app.command("convert")
def convert_cmd(
    ctx: typer.Context,
    paths: list[Path] = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Image files to convert.",
    ),
    output_format: str = typer.Option(
        "webp", "--format", "-f", help="Output format (webp, jpeg, png, avif, gif)."
    ),
    output_dir: Path = typer.Option(
        Path("converted"), "--output-dir", "-o", help="Directory for converted files."
    ),
    zip_output: bool = typer.Option(
        False, "--zip", help="Also write all converted files into one ZIP archive."
    ),
    server: str | None = typer.Option(
        None, "--server", help="Base URL of a running conversion service."
    ),
) -> None:
    """Convert image files and write the results to a directory.

    Parameters
    ----------
    ctx : typer.Context
        Typer context containing global options.
    paths : list[Path]
        Source images, converted in the given order.
    output_format : str, default="webp"
        Requested output format.
    output_dir : Path
        Destination directory; created when missing.
    zip_output : bool, default=False
        Whether to write ``converted_images_<format>.zip`` as well.
    server : str | None, default=None
        Remote service URL; conversion runs in-process when omitted.

    Notes
    -----
    - Exits with status 1 when every file fails.
    """
    debug: bool = bool(ctx.obj.get("debug", False))
    settings = get_settings()
    session = ConversionSession(ValidationLimits.from_settings(settings))

    try:
        for reason in session.add_files(InputFile.from_path(path) for path in paths):
            typer.echo(reason, err=True)
        runner = _build_runner(server)
        try:
            outcome = session.convert(runner, output_format)
        finally:
            close = getattr(runner, "close", None)
            if close is not None:
                close()
    except typer.BadParameter:
        raise
    except Exception as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))

    notification = summarize(outcome)
    typer.echo(f"{notification.title} {notification.message}")
    for detail in notification.details:
        typer.echo(f"  ✗ {detail}", err=True)

    for path in _write_outputs(outcome, output_dir):
        typer.echo(f"✓ Saved: {path}")

    if zip_output and outcome.successes:
        from image_converter.adapters.archive import ZipArchivePackager, archive_name

        try:
            data = session.build_archive(
                ZipArchivePackager(settings.archive_compression_level),
                on_progress=_echo_progress,
            )
        except ImageConverterError as exc:
            raise typer.Exit(code=_print_conversion_error(exc, debug))
        archive_path = output_dir / archive_name(outcome.target_format)
        archive_path.write_bytes(data)
        typer.echo(f"✓ Saved: {archive_path}")

    if notification.kind is NotificationKind.FAILED:
        raise typer.Exit(code=1)


@app.command("formats")
def formats_cmd() -> None:
    """List enabled output formats."""
    from image_converter.formats import FormatPolicy

    settings = get_settings()
    policy = FormatPolicy.from_settings(settings)
    for name in policy.names():
        parameters = policy.parameters_for(name)
        spec = parameters.format
        options = []
        if parameters.quality is not None:
            options.append(f"quality={parameters.quality}")
        if parameters.compression_level is not None:
            options.append(f"compression={parameters.compression_level}")
        if parameters.flatten_alpha:
            options.append("flatten-alpha")
        marker = "*" if name == settings.default_format else " "
        typer.echo(
            f"{marker} {name:<5} .{spec.extension:<5} {spec.mime_type:<11} "
            f"{' '.join(options)}".rstrip()
        )


@app.command("doctor")
def doctor_cmd() -> None:
    """Print installed library versions and Pillow codec support."""
    import importlib.metadata as metadata

    typer.echo(f"Python: {sys.version.split()[0]}")
    for module in DOCTOR_MODULES:
        try:
            version = metadata.version(module)
            typer.echo(f"{module}: {version}")
        except metadata.PackageNotFoundError:
            typer.echo(f"{module}: <not installed>")

    try:
        from image_converter.adapters.codec import PillowImageCodec
        from image_converter.formats import BUILTIN_FORMATS
    except ImportError:
        typer.echo("codecs: <unavailable>")
        return

    codec = PillowImageCodec()
    for spec in BUILTIN_FORMATS:
        status = "ok" if codec.can_encode(spec) else "missing"
        typer.echo(f"codec {spec.name}: {status}")


if __name__ == "__main__":
    app()
