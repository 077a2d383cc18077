from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for failures surfaced by the report pipeline glue."""

    kind = 'pipeline_error'


class ValidationError(PipelineError):
    kind = 'validation_error'


class AudioDownloadError(PipelineError):
    kind = 'download_failure'


class ConfigurationError(PipelineError):
    kind = 'configuration_error'


class TranscriptionError(PipelineError):
    kind = 'transcription_failure'


class EmptyTranscriptionError(PipelineError):
    kind = 'transcription_empty'


class ReportGenerationError(PipelineError):
    kind = 'generation_failure'


class DeliveryError(PipelineError):
    kind = 'delivery_failure'


def failure_kind(exc: BaseException) -> str:
    if isinstance(exc, PipelineError):
        return exc.kind
    return 'internal_error'
