"""Transcription stage (cloud or local, depending on the injected Transcriber)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from voxpipe._types import StageType
from voxpipe.pipeline.results import StageResult, count_words
from voxpipe.pipeline.stages import Stage

if TYPE_CHECKING:
    from voxpipe.backends.interface import Transcriber
    from voxpipe.pipeline.context import PipelineContext


class TranscriptionStage(Stage):
    """Converts ``audio`` to ``raw_text`` (and ``language``).

    The run's cancellation event and remaining deadline are forwarded to
    the transcriber. An empty transcript is an error.

    Args:
        transcriber: Capability performing the speech-to-text call.
        stage_type: CLOUD_TRANSCRIPTION or LOCAL_TRANSCRIPTION.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        *,
        stage_type: StageType = StageType.CLOUD_TRANSCRIPTION,
        name: str | None = None,
        retry_count: int = 0,
        retry_delay_s: float = 0.0,
    ) -> None:
        if stage_type not in (StageType.CLOUD_TRANSCRIPTION, StageType.LOCAL_TRANSCRIPTION):
            msg = f"Not a transcription stage type: {stage_type}"
            raise ValueError(msg)
        default = (
            "Cloud Transcription"
            if stage_type is StageType.CLOUD_TRANSCRIPTION
            else "Local Transcription"
        )
        super().__init__(name or default, retry_count=retry_count, retry_delay_s=retry_delay_s)
        self._transcriber = transcriber
        self._stage_type = stage_type

    @property
    def stage_type(self) -> str:
        return self._stage_type.value

    @property
    def transcriber(self) -> Transcriber:
        return self._transcriber

    async def execute(self, context: PipelineContext) -> StageResult:
        audio = context.require_audio()
        context.report_progress(f"Transcribing with {self._transcriber.provider}...", 30)

        output = await self._transcriber.transcribe(
            audio,
            cancel_event=context.cancel_event,
            timeout_s=context.remaining_s(),
        )

        if not output.text.strip():
            return StageResult.failure("Transcription returned empty result")

        context.raw_text = output.text
        if output.language:
            context.language = output.language

        words = count_words(output.text)
        context.report_progress(f"Transcribed {words} words", 50)
        return StageResult.success(
            {"WordCount": float(words), "CharacterCount": float(len(output.text))}
        )
