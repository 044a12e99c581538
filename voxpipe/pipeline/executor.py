"""Sequential pipeline executor.

Runs an immutable sequence of stages over one ``PipelineContext`` and turns
every outcome (success, soft-stop, stage error, exception, cancellation,
deadline) into a ``PipelineResult``. No exception raised by a stage escapes
``Pipeline.execute``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from voxpipe._types import PipelineStatus, StageStatus
from voxpipe.exceptions import DeadlineExceededError, OperationCancelledError, VoxpipeError
from voxpipe.logging import get_logger
from voxpipe.pipeline.results import (
    GLOBAL_AUDIO_DURATION_SECONDS,
    GLOBAL_TOTAL_WORD_COUNT,
    METRIC_ATTEMPTS,
    PipelineMetrics,
    PipelineResult,
    StageMetric,
    StageResult,
    count_words,
)

if TYPE_CHECKING:
    import structlog

    from voxpipe.pipeline.context import PipelineContext
    from voxpipe.pipeline.stages import Stage

_CANCELLED_MESSAGE = "Pipeline execution was cancelled"


class _Cancelled(Exception):
    """Internal signal: cancellation observed between retry attempts."""


class Pipeline:
    """Ordered, immutable list of stages executed sequentially.

    Built once from a ``PipelineConfig`` by the factory. Execution never
    mutates the stage list, so one Pipeline may run concurrently over
    different contexts.

    Args:
        name: Display name.
        stages: Stages in execution order.
        description: Optional human description.
        logger: Logger handle. Defaults to the "pipeline.executor" logger.
    """

    def __init__(
        self,
        name: str,
        stages: Sequence[Stage],
        *,
        description: str = "",
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._name = name
        self._stages: tuple[Stage, ...] = tuple(stages)
        self._description = description
        self._logger = logger if logger is not None else get_logger("pipeline.executor")

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    def __len__(self) -> int:
        return len(self._stages)

    def __repr__(self) -> str:
        return f"Pipeline(name={self._name!r}, stages={[s.name for s in self._stages]!r})"

    async def execute(self, context: PipelineContext) -> PipelineResult:
        """Run every stage in order over ``context``.

        Before each stage the cancellation signal and the deadline are
        checked. Each executed stage appends exactly one StageMetric,
        whatever its outcome.

        Args:
            context: Fresh per-run context.

        Returns:
            PipelineResult with status COMPLETED, SOFT_STOPPED, FAILED or
            CANCELLED.
        """
        log = self._logger.bind(pipeline=self._name)
        metrics = PipelineMetrics(pipeline_name=self._name)
        started = time.monotonic()
        total = len(self._stages)

        log.debug("pipeline_start", stages=total)

        for index, stage in enumerate(self._stages):
            if context.is_cancelled:
                log.info("pipeline_cancelled", stage=stage.name, position=index + 1)
                return self._cancelled(metrics, started, stage.name)

            remaining = context.remaining_s()
            if remaining is not None and remaining <= 0:
                error = str(DeadlineExceededError(self._deadline_budget(context, started)))
                log.warning("pipeline_deadline_exceeded", stage=stage.name, position=index + 1)
                return self._finish_failed(metrics, started, error, stage.name)

            context.report_progress(
                f"Stage {index + 1}/{total}: {stage.name}...",
                int(index / total * 100),
            )
            log.debug("stage_start", stage=stage.name, position=index + 1)

            stage_started = time.monotonic()
            try:
                result, attempts = await self._run_with_retries(stage, context, started, log)
            except _Cancelled:
                self._record(metrics, stage, stage_started, StageStatus.ERROR, {})
                log.info("pipeline_cancelled", stage=stage.name, position=index + 1)
                return self._cancelled(metrics, started, stage.name)

            custom = dict(result.metrics)
            if attempts > 1:
                custom[METRIC_ATTEMPTS] = float(attempts)
            duration_ms = self._record(metrics, stage, stage_started, result.status, custom)

            if result.status is StageStatus.SOFT_STOP:
                log.info("pipeline_soft_stop", stage=stage.name, reason=result.reason)
                context.report_progress(result.reason or "Nothing to transcribe", 100)
                metrics.total_duration_ms = _elapsed_ms(started)
                return PipelineResult(
                    status=PipelineStatus.SOFT_STOPPED,
                    metrics=metrics,
                    audio_duration_s=context.audio_duration_s,
                )

            if result.status is StageStatus.ERROR:
                error = result.error or f"Stage '{stage.name}' failed"
                log.warning("stage_failed", stage=stage.name, error=error, attempts=attempts)
                return self._finish_failed(metrics, started, error, stage.name)

            log.debug("stage_complete", stage=stage.name, duration_ms=round(duration_ms, 2))

        final_text = context.final_text
        word_count = count_words(final_text)
        metrics.set_global(GLOBAL_TOTAL_WORD_COUNT, float(word_count))
        if context.audio_duration_s is not None:
            metrics.set_global(GLOBAL_AUDIO_DURATION_SECONDS, context.audio_duration_s)
        metrics.total_duration_ms = _elapsed_ms(started)
        context.report_progress("Complete", 100)

        log.info(
            "pipeline_complete",
            duration_ms=round(metrics.total_duration_ms, 2),
            word_count=word_count,
        )
        return PipelineResult(
            status=PipelineStatus.COMPLETED,
            metrics=metrics,
            text=final_text,
            word_count=word_count,
            language=context.language,
            audio_duration_s=context.audio_duration_s,
        )

    async def _run_with_retries(
        self,
        stage: Stage,
        context: PipelineContext,
        started: float,
        log: structlog.stdlib.BoundLogger,
    ) -> tuple[StageResult, int]:
        """Execute a stage, re-running it after ERROR up to ``retry_count`` times.

        Raises:
            _Cancelled: If cancellation is observed during or between attempts.
        """
        attempts = 0
        while True:
            attempts += 1
            result = await self._run_once(stage, context, started, log)
            if result.status is not StageStatus.ERROR:
                return result, attempts
            if result.error == _CANCELLED_MESSAGE or context.is_cancelled:
                raise _Cancelled
            if attempts > stage.retry_count or self._deadline_passed(context):
                return result, attempts

            log.info(
                "stage_retry",
                stage=stage.name,
                attempt=attempts + 1,
                error=result.error,
                delay_s=stage.retry_delay_s,
            )
            if stage.retry_delay_s > 0:
                await asyncio.sleep(stage.retry_delay_s)
            if context.is_cancelled:
                raise _Cancelled

    async def _run_once(
        self,
        stage: Stage,
        context: PipelineContext,
        started: float,
        log: structlog.stdlib.BoundLogger,
    ) -> StageResult:
        remaining = context.remaining_s()
        try:
            if remaining is None:
                return await stage.execute(context)
            return await asyncio.wait_for(stage.execute(context), timeout=max(remaining, 0.0))
        except OperationCancelledError:
            return StageResult.failure(_CANCELLED_MESSAGE)
        except TimeoutError as e:
            if not self._deadline_passed(context):
                # Raised by the stage itself (socket or backend timeout).
                log.warning("stage_timeout", stage=stage.name, error=str(e))
                return StageResult.failure(f"Exception in {stage.name}: {e}")
            return StageResult.failure(
                str(DeadlineExceededError(self._deadline_budget(context, started)))
            )
        except VoxpipeError as e:
            log.debug("stage_raised", stage=stage.name, error=str(e))
            return StageResult.failure(str(e))
        except Exception as e:
            log.error("stage_exception", stage=stage.name, error=str(e), exc_info=True)
            return StageResult.failure(f"Exception in {stage.name}: {e}")

    def _record(
        self,
        metrics: PipelineMetrics,
        stage: Stage,
        stage_started: float,
        status: StageStatus,
        custom: dict[str, float],
    ) -> float:
        duration_ms = _elapsed_ms(stage_started)
        metrics.add_stage(
            StageMetric(
                stage_name=stage.name,
                stage_type=stage.stage_type,
                duration_ms=duration_ms,
                status=status,
                custom_metrics=custom,
            )
        )
        return duration_ms

    def _cancelled(
        self, metrics: PipelineMetrics, started: float, stage_name: str
    ) -> PipelineResult:
        metrics.total_duration_ms = _elapsed_ms(started)
        return PipelineResult(
            status=PipelineStatus.CANCELLED,
            metrics=metrics,
            error=_CANCELLED_MESSAGE,
            failed_stage=stage_name,
        )

    def _finish_failed(
        self, metrics: PipelineMetrics, started: float, error: str, stage_name: str
    ) -> PipelineResult:
        metrics.total_duration_ms = _elapsed_ms(started)
        return PipelineResult.failed(metrics, error, stage_name)

    @staticmethod
    def _deadline_passed(context: PipelineContext) -> bool:
        remaining = context.remaining_s()
        return remaining is not None and remaining <= 0

    @staticmethod
    def _deadline_budget(context: PipelineContext, started: float) -> float:
        if context.deadline is None:
            return 0.0
        return max(context.deadline - started, 0.0)


def _elapsed_ms(since: float) -> float:
    return (time.monotonic() - since) * 1000.0
