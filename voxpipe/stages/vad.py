"""Voice-activity trimming stage."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from voxpipe._types import StageType
from voxpipe.pipeline.results import StageResult
from voxpipe.pipeline.stages import Stage

if TYPE_CHECKING:
    from voxpipe.backends.interface import VoiceActivityTrimmer
    from voxpipe.pipeline.context import PipelineContext


class VoiceActivityTrimStage(Stage):
    """Removes silence from ``audio`` and updates ``audio_duration_s``.

    Args:
        trimmer: Capability that detects and removes silence.
        soft_stop_on_no_speech: When True, audio without any speech segment
            ends the run with a soft-stop instead of passing through untouched.
    """

    default_name = "Voice Activity Trimming"

    def __init__(
        self,
        trimmer: VoiceActivityTrimmer,
        *,
        soft_stop_on_no_speech: bool = False,
        name: str | None = None,
        retry_count: int = 0,
        retry_delay_s: float = 0.0,
    ) -> None:
        super().__init__(name, retry_count=retry_count, retry_delay_s=retry_delay_s)
        self._trimmer = trimmer
        self._soft_stop_on_no_speech = soft_stop_on_no_speech

    @property
    def stage_type(self) -> str:
        return StageType.VOICE_ACTIVITY_TRIM.value

    async def execute(self, context: PipelineContext) -> StageResult:
        audio = context.require_audio()
        context.report_progress("Detecting voice activity", 25)

        trimmed, metrics = await asyncio.to_thread(self._trimmer.process, audio)

        if metrics.get("SpeechSegmentsDetected", 0.0) == 0 and self._soft_stop_on_no_speech:
            return StageResult.soft_stop("No speech detected", metrics)

        context.audio = trimmed
        if "TrimmedDurationSeconds" in metrics:
            context.audio_duration_s = metrics["TrimmedDurationSeconds"]

        removed = metrics.get("SilenceRemovedSeconds", 0.0)
        context.report_progress(f"Trimmed {removed:.1f}s silence", 30)
        return StageResult.success(metrics)
