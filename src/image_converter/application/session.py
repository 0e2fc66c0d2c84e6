"""Conversion session: pending files, results and an explicit state machine."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import StrEnum

from image_converter.application.options import ValidationLimits
from image_converter.application.ports import (
    ArchivePackager,
    BatchRunner,
    ProgressCallback,
)
from image_converter.application.requests import InputFile
from image_converter.application.results import BatchOutcome
from image_converter.errors import (
    ArchiveError,
    FileConversionError,
    FileTooLargeError,
    NoFilesProvidedError,
    NotAnImageError,
    SessionStateError,
)

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    CONVERTING = "converting"
    ZIPPING = "zipping"


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset(
        {SessionState.VALIDATING, SessionState.CONVERTING, SessionState.ZIPPING}
    ),
    SessionState.VALIDATING: frozenset({SessionState.IDLE}),
    SessionState.CONVERTING: frozenset({SessionState.IDLE}),
    SessionState.ZIPPING: frozenset({SessionState.IDLE}),
}


class ConversionSession:
    """Single-owner session holding pending files and the last outcome.

    Busy states are entered and left through ``_transition`` only, so a
    session can never convert and zip at the same time.
    """

    def __init__(self, limits: ValidationLimits) -> None:
        self.limits = limits
        self.state = SessionState.IDLE
        self._pending: list[InputFile] = []
        self.outcome: BatchOutcome | None = None

    @property
    def pending(self) -> list[InputFile]:
        return list(self._pending)

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise SessionStateError(
                f"Cannot move from {self.state.value} to {target.value}."
            )
        logger.debug("session %s -> %s", self.state.value, target.value)
        self.state = target

    def _require_idle(self, action: str) -> None:
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"Cannot {action} while {self.state.value}.")

    def add_files(self, files: Iterable[InputFile]) -> list[str]:
        """Append new valid files; return reasons for ignored ones.

        Files already pending (same name, size and modification time) are
        skipped silently. Previous results are discarded.
        """
        self._transition(SessionState.VALIDATING)
        ignored: list[str] = []
        try:
            self.outcome = None
            known = {item.identity for item in self._pending}
            for file in files:
                try:
                    self._check_selection(file)
                except FileConversionError as exc:
                    ignored.append(f'"{file.name}" (ignored): {exc}')
                    continue
                if file.identity in known:
                    continue
                known.add(file.identity)
                self._pending.append(file)
        finally:
            self._transition(SessionState.IDLE)
        return ignored

    def _check_selection(self, file: InputFile) -> None:
        # Empty files are left for the converter to report.
        if not file.declared_mime_type.startswith("image/"):
            raise NotAnImageError(file.declared_mime_type)
        if file.byte_size > self.limits.max_file_size_bytes:
            raise FileTooLargeError(file.byte_size, self.limits.max_file_size_bytes)

    def remove_file(self, index: int) -> InputFile:
        """Remove one pending file by position."""
        self._require_idle("remove files")
        try:
            return self._pending.pop(index)
        except IndexError as exc:
            raise SessionStateError(f"No pending file at index {index}.") from exc

    def clear(self) -> None:
        """Drop pending files and results."""
        self._require_idle("clear the session")
        self._pending.clear()
        self.outcome = None

    def convert(self, converter: BatchRunner, target_format: str) -> BatchOutcome:
        """Convert all pending files.

        Raises
        ------
        NoFilesProvidedError
            If nothing is pending.
        UnsupportedFormatError
            If ``target_format`` is not enabled.
        """
        self._require_idle("convert")
        if not self._pending:
            raise NoFilesProvidedError("No files selected.")
        request = converter.create_request(self._pending, target_format)
        self._transition(SessionState.CONVERTING)
        try:
            self.outcome = None
            self.outcome = converter.convert(request)
        finally:
            self._transition(SessionState.IDLE)
        return self.outcome

    def build_archive(
        self,
        packager: ArchivePackager,
        on_progress: ProgressCallback | None = None,
    ) -> bytes:
        """Package the current successful outputs.

        Raises
        ------
        ArchiveError
            If there is nothing to package or packaging fails.
        """
        self._require_idle("build an archive")
        if self.outcome is None or not self.outcome.successes:
            raise ArchiveError("No converted files to archive.")
        entries = [(item.output_name, item.data) for item in self.outcome.successes]
        self._transition(SessionState.ZIPPING)
        try:
            return packager.package(entries, on_progress=on_progress)
        finally:
            self._transition(SessionState.IDLE)
