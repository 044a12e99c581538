"""Typed exceptions for voxpipe.

Hierarchy:
    VoxpipeError (base)
    +-- ConfigError
    |   +-- ConfigParseError
    |   +-- ConfigValidationError
    |   +-- UnknownStageTypeError
    |   +-- InvalidStageSettingError
    |   +-- StageBuildError
    |   +-- EmptyPipelineError
    +-- PipelineNotFoundError
    +-- StageError
    |   +-- MissingContextDataError
    |   +-- AudioError
    |   |   +-- AudioFormatError
    |   |   +-- AudioTooLargeError
    |   +-- TranscriptionError
    |   +-- TextCleaningError
    |   +-- BackendUnavailableError
    +-- OperationCancelledError
    +-- DeadlineExceededError
    +-- BenchmarkError
        +-- AudioAcquisitionError
"""

from __future__ import annotations


class VoxpipeError(Exception):
    """Base for all voxpipe exceptions."""


# --- Configuration ---


class ConfigError(VoxpipeError):
    """Pipeline configuration error.

    Fatal only to building the one pipeline it concerns.
    """


class ConfigParseError(ConfigError):
    """Failed to read or parse a pipeline configuration file."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse pipeline config '{path}': {reason}")


class ConfigValidationError(ConfigError):
    """Pipeline configuration has missing fields or wrong types."""

    def __init__(self, path: str, errors: list[str]) -> None:
        self.path = path
        self.errors = errors
        detail = "; ".join(errors)
        super().__init__(f"Pipeline config '{path}' is invalid: {detail}")


class UnknownStageTypeError(ConfigError):
    """No constructor is registered for a stage type identifier."""

    def __init__(self, stage_type: str, available: list[str]) -> None:
        self.stage_type = stage_type
        self.available = available
        super().__init__(
            f"No factory registered for stage type: {stage_type}. "
            f"Available types: {', '.join(available) or '(none)'}"
        )


class InvalidStageSettingError(ConfigError):
    """A stage setting holds a value of the wrong type."""

    def __init__(self, stage_type: str, key: str, expected: str, value: object) -> None:
        self.stage_type = stage_type
        self.key = key
        self.expected = expected
        self.value = value
        super().__init__(
            f"Setting '{key}' of stage '{stage_type}' must be {expected}, got {value!r}"
        )


class StageBuildError(ConfigError):
    """A stage could not be constructed from its configuration."""

    def __init__(self, stage_type: str, reason: str) -> None:
        self.stage_type = stage_type
        self.reason = reason
        super().__init__(f"Cannot build stage '{stage_type}': {reason}")


class EmptyPipelineError(ConfigError):
    """Pipeline configuration has no enabled stages."""

    def __init__(self, pipeline_name: str) -> None:
        self.pipeline_name = pipeline_name
        super().__init__(f"Pipeline '{pipeline_name}' has no enabled stages")


class PipelineNotFoundError(VoxpipeError):
    """Named pipeline is not loaded in the registry."""

    def __init__(self, pipeline_name: str) -> None:
        self.pipeline_name = pipeline_name
        super().__init__(f"Pipeline '{pipeline_name}' not found")


# --- Stages ---


class StageError(VoxpipeError):
    """A stage could not complete. Fatal for the remainder of the run."""


class MissingContextDataError(StageError):
    """A stage required a context field that no previous stage produced."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Required context field '{field}' is missing")


class AudioError(StageError):
    """Audio processing error."""


class AudioFormatError(AudioError):
    """Unsupported or invalid audio format."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Invalid audio format: {detail}")


class AudioTooLargeError(AudioError):
    """Audio buffer exceeds the allowed limit."""

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        size_mb = size_bytes / (1024 * 1024)
        max_mb = max_bytes / (1024 * 1024)
        super().__init__(f"Audio file ({size_mb:.2f}MB) exceeds the {max_mb:.0f}MB limit")


class TranscriptionError(StageError):
    """Transcriber failed to produce text."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} transcription failed: {reason}")


class TextCleaningError(StageError):
    """Text cleaner failed to rewrite the transcript."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} text cleaning failed: {reason}")


class BackendUnavailableError(StageError):
    """A capability backend cannot be used (missing library, missing credentials)."""

    def __init__(self, backend: str, reason: str) -> None:
        self.backend = backend
        self.reason = reason
        super().__init__(f"Backend '{backend}' unavailable: {reason}")


# --- Execution control ---


class OperationCancelledError(VoxpipeError):
    """The caller cancelled the run while an operation was in flight."""

    def __init__(self, operation: str = "Pipeline execution") -> None:
        self.operation = operation
        super().__init__(f"{operation} was cancelled")


class DeadlineExceededError(VoxpipeError):
    """The caller-supplied deadline elapsed before the run finished."""

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(f"Pipeline deadline of {timeout_s:.1f}s exceeded")


# --- Benchmark ---


class BenchmarkError(VoxpipeError):
    """Benchmark run error."""


class AudioAcquisitionError(BenchmarkError):
    """Audio for a benchmark run could not be acquired."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to acquire audio from '{source}': {reason}")


class InvalidTransitionError(BenchmarkError):
    """Invalid state transition in a benchmark run."""

    def __init__(self, from_state: str, to_state: str) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state} -> {to_state}")
