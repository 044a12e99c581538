"""Core types for voxpipe.

Enums and small value objects shared by the pipeline executor, the stage
implementations, the capability contracts, and the benchmark engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StageType(str, Enum):
    """Built-in stage kinds known to the host.

    The value is the identifier used in persisted pipeline configurations.
    """

    AUDIO_VALIDATION = "AudioValidation"
    NOISE_REDUCTION = "NoiseReduction"
    VOICE_ACTIVITY_TRIM = "VoiceActivityTrim"
    CLOUD_TRANSCRIPTION = "CloudTranscription"
    LOCAL_TRANSCRIPTION = "LocalTranscription"
    LLM_TEXT_CLEANING = "LLMTextCleaning"
    PASS_THROUGH_CLEANING = "PassThroughCleaning"


class StageStatus(Enum):
    """Outcome of a single stage execution.

    - SUCCESS: context updated for downstream stages.
    - SOFT_STOP: nothing to do (e.g. no speech); ends the run without error.
    - ERROR: the stage could not complete; fatal for the run.
    """

    SUCCESS = "success"
    SOFT_STOP = "soft_stop"
    ERROR = "error"


class PipelineStatus(Enum):
    """Terminal status of a pipeline run."""

    COMPLETED = "completed"
    SOFT_STOPPED = "soft_stopped"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BenchmarkState(Enum):
    """State of a benchmark run.

    Valid transitions:
        IDLE -> LOADING (audio acquisition starts)
        LOADING -> RUNNING (audio acquired)
        LOADING -> ABORTED (acquisition failed, no variant executes)
        RUNNING -> SCORED (every variant succeeded or failed)
        SCORED -> COMPLETE
    """

    IDLE = "idle"
    LOADING = "loading"
    RUNNING = "running"
    SCORED = "scored"
    COMPLETE = "complete"
    ABORTED = "aborted"


class VariantState(Enum):
    """State of one benchmark variant inside a run."""

    PENDING = "pending"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """Advisory progress notification sent to a progress sink."""

    message: str
    percent: int | None = None


@dataclass(frozen=True, slots=True)
class TranscriptionOutput:
    """Text produced by a Transcriber."""

    text: str
    language: str | None = None
