"""Noise reduction stage."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from voxpipe._types import StageType
from voxpipe.pipeline.results import StageResult
from voxpipe.pipeline.stages import Stage

if TYPE_CHECKING:
    from voxpipe.backends.interface import NoiseReducer
    from voxpipe.pipeline.context import PipelineContext


class NoiseReductionStage(Stage):
    """Replaces ``audio`` with the output of a NoiseReducer.

    The reducer runs in a worker thread. Its metrics
    (``NoiseReductionDB``, ``SignalChangePercent``) become the stage's
    custom metrics.
    """

    default_name = "Noise Reduction"

    def __init__(
        self,
        reducer: NoiseReducer,
        *,
        name: str | None = None,
        retry_count: int = 0,
        retry_delay_s: float = 0.0,
    ) -> None:
        super().__init__(name, retry_count=retry_count, retry_delay_s=retry_delay_s)
        self._reducer = reducer

    @property
    def stage_type(self) -> str:
        return StageType.NOISE_REDUCTION.value

    @property
    def reducer(self) -> NoiseReducer:
        return self._reducer

    async def execute(self, context: PipelineContext) -> StageResult:
        audio = context.require_audio()
        context.report_progress("Applying noise reduction", 15)

        processed, metrics = await asyncio.to_thread(self._reducer.process, audio)
        context.audio = processed

        reduction_db = metrics.get("NoiseReductionDB", 0.0)
        context.report_progress(f"Noise reduced by {reduction_db:.1f} dB", 20)
        return StageResult.success(metrics)
