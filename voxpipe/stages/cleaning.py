"""Text cleaning stage (LLM-based or pass-through)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from voxpipe._types import StageType
from voxpipe.pipeline.results import StageResult, count_words
from voxpipe.pipeline.stages import Stage

if TYPE_CHECKING:
    from voxpipe.backends.interface import TextCleaner
    from voxpipe.pipeline.context import PipelineContext


class TextCleaningStage(Stage):
    """Rewrites ``raw_text`` into ``cleaned_text``.

    Args:
        cleaner: Capability performing the rewrite.
        stage_type: LLM_TEXT_CLEANING or PASS_THROUGH_CLEANING.
    """

    def __init__(
        self,
        cleaner: TextCleaner,
        *,
        stage_type: StageType = StageType.LLM_TEXT_CLEANING,
        name: str | None = None,
        retry_count: int = 0,
        retry_delay_s: float = 0.0,
    ) -> None:
        if stage_type not in (StageType.LLM_TEXT_CLEANING, StageType.PASS_THROUGH_CLEANING):
            msg = f"Not a text cleaning stage type: {stage_type}"
            raise ValueError(msg)
        default = (
            "LLM Text Cleaning"
            if stage_type is StageType.LLM_TEXT_CLEANING
            else "Pass-Through Cleaning"
        )
        super().__init__(name or default, retry_count=retry_count, retry_delay_s=retry_delay_s)
        self._cleaner = cleaner
        self._stage_type = stage_type

    @property
    def stage_type(self) -> str:
        return self._stage_type.value

    async def execute(self, context: PipelineContext) -> StageResult:
        raw_text = context.require_raw_text()
        context.report_progress("Cleaning text...", 70)

        cleaned = await self._cleaner.clean(
            raw_text,
            cancel_event=context.cancel_event,
            timeout_s=context.remaining_s(),
        )
        if not cleaned.strip():
            return StageResult.failure("Text cleaning returned empty result")

        context.cleaned_text = cleaned
        before = count_words(raw_text)
        after = count_words(cleaned)
        context.report_progress(f"Cleaned {after} words", 90)
        return StageResult.success(
            {
                "BeforeWordCount": float(before),
                "AfterWordCount": float(after),
                "WordCountChange": float(after - before),
            }
        )
