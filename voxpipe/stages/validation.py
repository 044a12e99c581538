"""Audio validation stage.

Checks the buffer is a well-formed WAV container within the size limit,
decodes it to measure duration and level, and soft-stops on empty,
too-short or silent recordings so callers can tell "nothing to
transcribe" apart from a failure.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from voxpipe._audio_constants import (
    DEFAULT_MAX_FILE_SIZE_MB,
    DEFAULT_MIN_DURATION_S,
    DEFAULT_SILENCE_THRESHOLD_DBFS,
)
from voxpipe._types import StageType
from voxpipe.dsp.audio_io import decode_audio, duration_s, has_wav_signature, peak_dbfs
from voxpipe.exceptions import AudioFormatError, AudioTooLargeError
from voxpipe.pipeline.results import StageResult
from voxpipe.pipeline.stages import Stage

if TYPE_CHECKING:
    from voxpipe.pipeline.context import PipelineContext

_BYTES_PER_MB = 1024 * 1024


class AudioValidationStage(Stage):
    """Validates and measures the input audio.

    Writes ``audio_duration_s``. Reports ``AudioSizeBytes``,
    ``AudioSizeMB``, ``AudioDurationSeconds``, ``SampleRate`` and
    ``PeakDbfs``.
    """

    default_name = "Audio Validation"

    def __init__(
        self,
        *,
        max_file_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB,
        silence_threshold_dbfs: float = DEFAULT_SILENCE_THRESHOLD_DBFS,
        min_duration_s: float = DEFAULT_MIN_DURATION_S,
        name: str | None = None,
        retry_count: int = 0,
        retry_delay_s: float = 0.0,
    ) -> None:
        super().__init__(name, retry_count=retry_count, retry_delay_s=retry_delay_s)
        self._max_bytes = int(max_file_size_mb * _BYTES_PER_MB)
        self._silence_threshold_dbfs = silence_threshold_dbfs
        self._min_duration_s = min_duration_s

    @property
    def stage_type(self) -> str:
        return StageType.AUDIO_VALIDATION.value

    async def execute(self, context: PipelineContext) -> StageResult:
        audio = context.audio
        if not audio:
            return StageResult.failure("Audio data is null or empty")

        size = len(audio)
        if size > self._max_bytes:
            return StageResult.failure(
                str(AudioTooLargeError(size, self._max_bytes)),
                {"AudioSizeBytes": float(size)},
            )

        if not has_wav_signature(audio):
            return StageResult.failure(str(AudioFormatError("missing RIFF/WAVE header")))

        try:
            samples, sample_rate = await asyncio.to_thread(decode_audio, audio)
        except AudioFormatError as e:
            return StageResult.failure(str(e))

        seconds = duration_s(samples, sample_rate)
        peak = peak_dbfs(samples)
        context.audio_duration_s = seconds

        metrics = {
            "AudioSizeBytes": float(size),
            "AudioSizeMB": size / _BYTES_PER_MB,
            "AudioDurationSeconds": seconds,
            "SampleRate": float(sample_rate),
            "PeakDbfs": peak,
        }

        if len(samples) == 0:
            return StageResult.soft_stop("No audio detected", metrics)
        if seconds < self._min_duration_s:
            return StageResult.soft_stop(
                f"Recording too short ({seconds:.2f}s < {self._min_duration_s:.2f}s)", metrics
            )
        if peak < self._silence_threshold_dbfs:
            return StageResult.soft_stop("No audio detected (silence)", metrics)

        context.report_progress("Audio validated", 10)
        return StageResult.success(metrics)
