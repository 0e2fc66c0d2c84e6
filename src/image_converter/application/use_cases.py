"""Application use-cases orchestrating batch conversion."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from image_converter.application.naming import build_output_name
from image_converter.application.options import ValidationLimits
from image_converter.application.ports import ImageCodec
from image_converter.application.requests import ConversionRequest, InputFile
from image_converter.application.results import (
    BatchOutcome,
    ConversionFailure,
    ConversionResult,
    ConversionSuccess,
)
from image_converter.application.validation import FileValidator
from image_converter.config import ConverterSettings, get_settings
from image_converter.errors import CodecError, FileConversionError
from image_converter.formats import EncodeParameters, FormatPolicy

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to process this file."


class BatchConverter:
    """Validate and convert every file of a batch, isolating failures per file.

    Parameters
    ----------
    policy : FormatPolicy
        Format table used to resolve the target format.
    codec : ImageCodec
        Image library adapter performing the actual encode.
    limits : ValidationLimits
        Per-file limits.
    max_workers : int, default=1
        Files converted concurrently. Results keep submission order
        regardless of this value.
    """

    def __init__(
        self,
        policy: FormatPolicy,
        codec: ImageCodec,
        limits: ValidationLimits,
        *,
        max_workers: int = 1,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.policy = policy
        self.codec = codec
        self.validator = FileValidator(limits, codec)
        self.max_workers = max_workers

    @classmethod
    def from_settings(
        cls,
        settings: ConverterSettings,
        codec: ImageCodec | None = None,
    ) -> BatchConverter:
        """Build a converter from runtime settings."""
        if codec is None:
            from image_converter.adapters.codec import PillowImageCodec

            codec = PillowImageCodec(max_image_pixels=settings.max_image_pixels)
        return cls(
            policy=FormatPolicy.from_settings(settings),
            codec=codec,
            limits=ValidationLimits.from_settings(settings),
            max_workers=settings.max_workers,
        )

    def create_request(
        self, files: Iterable[InputFile], target_format: str
    ) -> ConversionRequest:
        """Build a request after resolving the target format.

        Raises
        ------
        UnsupportedFormatError
            If the target format is not enabled.
        NoFilesProvidedError
            If ``files`` is empty.
        """
        spec = self.policy.resolve(target_format)
        return ConversionRequest.create(files, spec.name)

    def convert(self, request: ConversionRequest) -> BatchOutcome:
        """Convert every file of ``request``.

        A batch of N files always yields N results in submission order.

        Raises
        ------
        UnsupportedFormatError
            If the target format is not enabled; raised before any file is
            touched.
        """
        parameters = self.policy.parameters_for(request.target_format)
        logger.info(
            "converting %d file(s) to %s",
            len(request.files),
            parameters.format.name,
        )
        if self.max_workers == 1 or len(request.files) == 1:
            results = [self.convert_file(item, parameters) for item in request.files]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(
                    executor.map(
                        lambda item: self.convert_file(item, parameters),
                        request.files,
                    )
                )
        outcome = BatchOutcome(
            results=tuple(results), target_format=parameters.format.name
        )
        logger.info(
            "batch finished: %d converted, %d failed",
            len(outcome.successes),
            len(outcome.failures),
        )
        return outcome

    def convert_file(
        self, file: InputFile, parameters: EncodeParameters
    ) -> ConversionResult:
        """Convert one file; never raises."""
        try:
            self.validator.check_file(file)
            data = file.read()
            self.validator.check_dimensions(data)
            try:
                encoded = self.codec.encode(data, parameters)
            except FileConversionError:
                raise
            except Exception as exc:
                raise CodecError(str(exc) or GENERIC_FAILURE_MESSAGE) from exc
        except FileConversionError as exc:
            logger.warning("skipping %s: %s", file.name, exc)
            return ConversionFailure(
                source_name=file.name,
                message=str(exc) or GENERIC_FAILURE_MESSAGE,
                code=exc.code,
            )
        except Exception as exc:
            logger.exception("unexpected error while processing %s", file.name)
            return ConversionFailure(
                source_name=file.name,
                message=str(exc) or GENERIC_FAILURE_MESSAGE,
                code=CodecError.code,
            )
        return ConversionSuccess(
            source_name=file.name,
            output_name=build_output_name(file.name, parameters.format),
            data=encoded,
            mime_type=parameters.format.mime_type,
        )


def convert_batch(
    files: Iterable[InputFile],
    target_format: str,
    *,
    settings: ConverterSettings | None = None,
    codec: ImageCodec | None = None,
) -> BatchOutcome:
    """Use-case: convert a batch of files with settings-derived defaults."""
    converter = BatchConverter.from_settings(settings or get_settings(), codec=codec)
    return converter.convert(converter.create_request(files, target_format))
