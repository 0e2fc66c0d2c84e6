"""Application-layer result objects."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ConversionSuccess:
    """Converted output for one input file."""

    source_name: str
    output_name: str
    data: bytes
    mime_type: str

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class ConversionFailure:
    """Failure reason for one input file."""

    source_name: str
    message: str
    code: str

    @property
    def success(self) -> bool:
        return False


type ConversionResult = ConversionSuccess | ConversionFailure


@dataclass(frozen=True)
class BatchOutcome:
    """Per-file results of one batch, in submission order."""

    results: tuple[ConversionResult, ...]
    target_format: str

    @property
    def successes(self) -> list[ConversionSuccess]:
        return [item for item in self.results if isinstance(item, ConversionSuccess)]

    @property
    def failures(self) -> list[ConversionFailure]:
        return [item for item in self.results if isinstance(item, ConversionFailure)]

    @property
    def total(self) -> int:
        return len(self.results)
