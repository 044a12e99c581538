"""Benchmark engine: runs every variant over the same audio and ranks them.

Variants execute concurrently up to ``max_concurrency``. Each variant is
isolated: a build error, a failed run or an unexpected exception becomes a
failed BenchmarkResult and never aborts the others.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TYPE_CHECKING

from voxpipe._types import BenchmarkState, VariantState
from voxpipe.benchmark.models import BenchmarkReport, BenchmarkResult
from voxpipe.benchmark.scoring import calculate_accuracy, rank_results
from voxpipe.benchmark.state import BenchmarkRun
from voxpipe.benchmark.variants import BenchmarkVariant, benchmark_variants
from voxpipe.dsp.audio_io import has_wav_signature
from voxpipe.dsp.denoise import METRIC_NOISE_REDUCTION_DB
from voxpipe.dsp.vad import METRIC_SILENCE_REMOVED_SECONDS
from voxpipe.exceptions import AudioAcquisitionError
from voxpipe.logging import get_logger
from voxpipe.pipeline.context import BuildContext, PipelineContext
from voxpipe.pipeline.factory import default_stage_factory

if TYPE_CHECKING:
    import structlog

    from voxpipe.config.settings import VoxpipeSettings
    from voxpipe.pipeline.factory import StageFactory
    from voxpipe.pipeline.results import PipelineResult

_READ_ATTEMPTS = 3
_READ_RETRY_DELAY_S = 0.2


class BenchmarkEngine:
    """Compares stage combinations over one recording.

    Args:
        factory: Builds each variant's pipeline.
        build_context: Credentials and settings shared by all variants.
        max_concurrency: Variants executing at once. Defaults to
            ``settings.benchmark.max_concurrency``.
        timeout_s: Per-variant deadline. Defaults to ``settings.benchmark.timeout_s``.
        accuracy_weight: Weight of accuracy in the composite score.
        logger: Logger handle. Defaults to the "benchmark" logger.
    """

    def __init__(
        self,
        factory: StageFactory,
        build_context: BuildContext,
        *,
        max_concurrency: int | None = None,
        timeout_s: float | None = None,
        accuracy_weight: float | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        bench = build_context.settings.benchmark
        self._factory = factory
        self._build_context = build_context
        self._max_concurrency = (
            max_concurrency if max_concurrency is not None else bench.max_concurrency
        )
        if self._max_concurrency < 1:
            msg = f"max_concurrency must be >= 1, got {self._max_concurrency}"
            raise ValueError(msg)
        self._timeout_s = timeout_s if timeout_s is not None else bench.timeout_s
        self._accuracy_weight = (
            accuracy_weight if accuracy_weight is not None else bench.accuracy_weight
        )
        self._logger = logger if logger is not None else get_logger("benchmark")

    @classmethod
    def from_settings(
        cls,
        settings: VoxpipeSettings | None = None,
        *,
        factory: StageFactory | None = None,
        build_context: BuildContext | None = None,
        max_concurrency: int | None = None,
    ) -> BenchmarkEngine:
        if build_context is None:
            build_context = BuildContext.from_settings(settings)
        return cls(
            factory if factory is not None else default_stage_factory(),
            build_context,
            max_concurrency=max_concurrency,
        )

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    def variants(self) -> list[BenchmarkVariant]:
        """Variants for this engine; local ones only when a model path is configured."""
        return benchmark_variants(include_local=self._build_context.has_local_model)

    async def run(self, audio: bytes, reference_text: str | None = None) -> list[BenchmarkResult]:
        """Run every variant over ``audio`` and return the ranked results.

        Args:
            audio: WAV buffer shared read-only by all variants.
            reference_text: Ground truth for accuracy scoring, if known.

        Returns:
            Ranked successes followed by failures. Empty when the run aborted.
        """
        report = await self.run_report(audio, reference_text)
        return list(report.results)

    async def run_report(
        self,
        audio: bytes,
        reference_text: str | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> BenchmarkReport:
        """Like ``run()`` but returns the full BenchmarkReport."""
        run = BenchmarkRun(self._logger)
        run.transition(BenchmarkState.LOADING)
        if not audio:
            return self._abort(run, AudioAcquisitionError("<buffer>", "audio buffer is empty"))
        run.transition(BenchmarkState.RUNNING)
        return await self._execute(run, audio, reference_text, cancel_event)

    async def run_file(
        self,
        path: str | Path,
        reference_text: str | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> BenchmarkReport:
        """Read a WAV file and benchmark it.

        A file that cannot be read or is not a WAV aborts the run before
        any variant executes.
        """
        run = BenchmarkRun(self._logger)
        run.transition(BenchmarkState.LOADING)
        try:
            audio = await _read_wav_file(Path(path), self._logger)
        except AudioAcquisitionError as e:
            return self._abort(run, e)
        run.transition(BenchmarkState.RUNNING)
        return await self._execute(run, audio, reference_text, cancel_event)

    async def _execute(
        self,
        run: BenchmarkRun,
        audio: bytes,
        reference_text: str | None,
        cancel_event: asyncio.Event | None,
    ) -> BenchmarkReport:
        variants = self.variants()
        started = time.monotonic()
        self._logger.info(
            "benchmark_start",
            variants=[v.name for v in variants],
            max_concurrency=self._max_concurrency,
            has_reference=bool(reference_text and reference_text.strip()),
        )

        semaphore = asyncio.Semaphore(self._max_concurrency)
        results = await asyncio.gather(
            *(
                self._run_variant(variant, audio, reference_text, semaphore, cancel_event)
                for variant in variants
            )
        )

        run.transition(BenchmarkState.SCORED)
        ranked = rank_results(results, accuracy_weight=self._accuracy_weight)
        run.transition(BenchmarkState.COMPLETE)

        report = BenchmarkReport(
            state=run.state,
            results=tuple(ranked),
            wall_time_ms=(time.monotonic() - started) * 1000.0,
            has_accuracy=any(r.accuracy is not None for r in ranked if r.success),
            variant_names=tuple(v.name for v in variants),
        )
        winner = report.winner
        self._logger.info(
            "benchmark_complete",
            winner=winner.pipeline_name if winner else None,
            succeeded=len(report.successes),
            failed=len(report.failures),
            wall_time_ms=round(report.wall_time_ms, 2),
        )
        return report

    async def _run_variant(
        self,
        variant: BenchmarkVariant,
        audio: bytes,
        reference_text: str | None,
        semaphore: asyncio.Semaphore,
        cancel_event: asyncio.Event | None,
    ) -> BenchmarkResult:
        async with semaphore:
            self._logger.debug(
                "variant_start", variant=variant.name, state=VariantState.EXECUTING.value
            )
            try:
                pipeline = self._factory.build(variant.to_config(), self._build_context)
                context = PipelineContext.for_audio(
                    audio,
                    metadata={"benchmark_variant": variant.name},
                    cancel_event=cancel_event,
                    timeout_s=self._timeout_s,
                )
                result = await pipeline.execute(context)
            except Exception as e:
                self._logger.warning("variant_failed", variant=variant.name, error=str(e))
                return BenchmarkResult(
                    pipeline_name=variant.name,
                    success=False,
                    error=str(e) or type(e).__name__,
                    state=VariantState.FAILED,
                )

        benchmark_result = _to_benchmark_result(variant.name, result, reference_text)
        self._logger.info(
            "variant_complete",
            variant=variant.name,
            success=benchmark_result.success,
            duration_ms=round(benchmark_result.duration_ms, 2),
            words=benchmark_result.word_count,
        )
        return benchmark_result

    def _abort(self, run: BenchmarkRun, error: AudioAcquisitionError) -> BenchmarkReport:
        run.transition(BenchmarkState.ABORTED)
        self._logger.warning("benchmark_aborted", source=error.source, reason=error.reason)
        return BenchmarkReport(state=run.state, error=str(error))


def _to_benchmark_result(
    name: str, result: PipelineResult, reference_text: str | None
) -> BenchmarkResult:
    duration_ms = result.metrics.total_duration_ms
    if not result.success:
        return BenchmarkResult(
            pipeline_name=name,
            success=False,
            duration_ms=duration_ms,
            error=result.error or "Unknown error",
            state=VariantState.FAILED,
        )

    accuracy = None
    if reference_text and reference_text.strip() and result.text:
        accuracy = calculate_accuracy(reference_text, result.text)
    return BenchmarkResult(
        pipeline_name=name,
        success=True,
        duration_ms=duration_ms,
        transcription=result.text,
        word_count=result.word_count,
        accuracy=accuracy,
        noise_reduction_db=result.metrics.find_metric(METRIC_NOISE_REDUCTION_DB) or 0.0,
        silence_removed_s=result.metrics.find_metric(METRIC_SILENCE_REMOVED_SECONDS) or 0.0,
        state=VariantState.SUCCEEDED,
    )


async def _read_wav_file(path: Path, logger: structlog.stdlib.BoundLogger) -> bytes:
    """Read a WAV file, retrying briefly while it is locked by a writer.

    Raises:
        AudioAcquisitionError: Missing, unreadable, empty or non-WAV file.
    """
    source = str(path)
    audio = b""
    for attempt in range(1, _READ_ATTEMPTS + 1):
        try:
            audio = await asyncio.to_thread(path.read_bytes)
            break
        except FileNotFoundError as e:
            raise AudioAcquisitionError(source, "file not found") from e
        except IsADirectoryError as e:
            raise AudioAcquisitionError(source, "path is a directory") from e
        except OSError as e:
            if attempt == _READ_ATTEMPTS:
                raise AudioAcquisitionError(source, str(e)) from e
            logger.info("audio_read_retry", path=source, attempt=attempt, error=str(e))
            await asyncio.sleep(_READ_RETRY_DELAY_S)

    if not audio:
        raise AudioAcquisitionError(source, "file is empty")
    if not has_wav_signature(audio):
        raise AudioAcquisitionError(source, "not a WAV file (missing RIFF/WAVE header)")
    return audio
