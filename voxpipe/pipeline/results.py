"""Stage outcomes, metrics, and pipeline results."""

from __future__ import annotations

from dataclasses import dataclass, field

from voxpipe._types import PipelineStatus, StageStatus

GLOBAL_TOTAL_WORD_COUNT = "TotalWordCount"
GLOBAL_AUDIO_DURATION_SECONDS = "AudioDurationSeconds"
METRIC_ATTEMPTS = "Attempts"


@dataclass(frozen=True, slots=True)
class StageResult:
    """Outcome of one ``Stage.execute`` call.

    Exactly one of three variants: SUCCESS, SOFT_STOP (nothing to do, not an
    error), or ERROR (carries a human-readable message).
    """

    status: StageStatus
    error: str | None = None
    reason: str | None = None
    metrics: dict[str, float] = field(default_factory=dict)

    @classmethod
    def success(cls, metrics: dict[str, float] | None = None) -> StageResult:
        return cls(status=StageStatus.SUCCESS, metrics=dict(metrics or {}))

    @classmethod
    def soft_stop(cls, reason: str, metrics: dict[str, float] | None = None) -> StageResult:
        return cls(status=StageStatus.SOFT_STOP, reason=reason, metrics=dict(metrics or {}))

    @classmethod
    def failure(cls, error: str, metrics: dict[str, float] | None = None) -> StageResult:
        return cls(status=StageStatus.ERROR, error=error, metrics=dict(metrics or {}))

    @property
    def is_error(self) -> bool:
        return self.status is StageStatus.ERROR


@dataclass(frozen=True, slots=True)
class StageMetric:
    """Timing and custom metrics for one executed stage."""

    stage_name: str
    stage_type: str
    duration_ms: float
    status: StageStatus
    custom_metrics: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True)
class PipelineMetrics:
    """Aggregated metrics for one pipeline execution.

    ``stages`` is in execution order. ``global_metrics`` holds run-wide
    values such as ``TotalWordCount``.
    """

    pipeline_name: str
    total_duration_ms: float = 0.0
    stages: list[StageMetric] = field(default_factory=list)
    global_metrics: dict[str, float] = field(default_factory=dict)

    def add_stage(self, metric: StageMetric) -> None:
        self.stages.append(metric)

    def set_global(self, key: str, value: float) -> None:
        self.global_metrics[key] = value

    @property
    def stage_duration_ms(self) -> float:
        """Sum of per-stage durations (never exceeds ``total_duration_ms``)."""
        return sum(stage.duration_ms for stage in self.stages)

    def find_metric(self, key: str) -> float | None:
        """Return the last value of a custom metric reported by any stage.

        Global metrics are consulted when no stage reported ``key``.
        """
        for stage in reversed(self.stages):
            if key in stage.custom_metrics:
                return stage.custom_metrics[key]
        return self.global_metrics.get(key)

    def summary(self) -> str:
        """Human-readable multi-line summary."""
        lines = [
            f"Pipeline: {self.pipeline_name}",
            f"Total Duration: {self.total_duration_ms:.2f}ms",
            f"Stages: {len(self.stages)}",
        ]
        for stage in self.stages:
            line = f"  - {stage.stage_name}: {stage.duration_ms:.2f}ms"
            if stage.status is not StageStatus.SUCCESS:
                line += f" [{stage.status.value}]"
            if stage.custom_metrics:
                rendered = ", ".join(f"{k}={_fmt(v)}" for k, v in stage.custom_metrics.items())
                line += f" ({rendered})"
            lines.append(line)
        if self.global_metrics:
            lines.append("Global Metrics:")
            lines.extend(f"  - {k}: {_fmt(v)}" for k, v in self.global_metrics.items())
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Result of ``Pipeline.execute``.

    ``success`` is True for COMPLETED and SOFT_STOPPED. When ``success`` is
    False the text is always empty and ``error`` is set.
    """

    status: PipelineStatus
    metrics: PipelineMetrics
    text: str = ""
    word_count: int = 0
    language: str | None = None
    audio_duration_s: float | None = None
    error: str | None = None
    failed_stage: str | None = None

    @property
    def success(self) -> bool:
        return self.status in (PipelineStatus.COMPLETED, PipelineStatus.SOFT_STOPPED)

    @property
    def soft_stopped(self) -> bool:
        return self.status is PipelineStatus.SOFT_STOPPED

    @property
    def cancelled(self) -> bool:
        return self.status is PipelineStatus.CANCELLED

    @classmethod
    def failed(
        cls,
        metrics: PipelineMetrics,
        error: str,
        failed_stage: str | None = None,
    ) -> PipelineResult:
        return cls(
            status=PipelineStatus.FAILED,
            metrics=metrics,
            error=error,
            failed_stage=failed_stage,
        )


def count_words(text: str | None) -> int:
    """Whitespace-delimited token count."""
    if not text:
        return 0
    return len(text.split())


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"
