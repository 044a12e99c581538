"""Benchmark result and report models."""

from __future__ import annotations

from dataclasses import dataclass, field

from voxpipe._types import BenchmarkState, VariantState

WINNER_LABEL = "🏆"
FAILED_LABEL = "❌"
_PODIUM_LABELS = {1: WINNER_LABEL, 2: "🥈", 3: "🥉"}


def rank_label(rank: int) -> str:
    """Display label for a 1-based rank: medals for the podium, ``#n`` after."""
    return _PODIUM_LABELS.get(rank, f"#{rank}")


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    """Outcome of one benchmark variant.

    Created by the engine, then completed by the scorer (accuracy,
    composite score, rank). Failed variants are never ranked and carry
    ``"ERROR: <message>"`` as their transcription.
    """

    pipeline_name: str
    success: bool
    duration_ms: float = 0.0
    transcription: str = ""
    word_count: int = 0
    accuracy: float | None = None
    composite_score: float | None = None
    is_winner: bool = False
    rank: int | None = None
    rank_label: str = ""
    noise_reduction_db: float = 0.0
    silence_removed_s: float = 0.0
    error: str | None = None
    state: VariantState = VariantState.PENDING

    @property
    def duration_display(self) -> str:
        if not self.success:
            return "Failed"
        return f"{self.duration_ms:.0f} ms"

    @property
    def accuracy_display(self) -> str:
        if not self.success or self.accuracy is None:
            return "N/A"
        return f"{self.accuracy:.1f}%"


@dataclass(frozen=True, slots=True)
class BenchmarkReport:
    """Ranked results of a benchmark run plus run-level figures.

    ``results`` lists ranked successes first (winner at index 0), then
    failures in variant order.
    """

    state: BenchmarkState
    results: tuple[BenchmarkResult, ...] = ()
    wall_time_ms: float = 0.0
    has_accuracy: bool = False
    error: str | None = None
    variant_names: tuple[str, ...] = field(default_factory=tuple)

    @property
    def successes(self) -> list[BenchmarkResult]:
        return [r for r in self.results if r.success]

    @property
    def failures(self) -> list[BenchmarkResult]:
        return [r for r in self.results if not r.success]

    @property
    def winner(self) -> BenchmarkResult | None:
        return next((r for r in self.results if r.is_winner), None)

    @property
    def fastest(self) -> BenchmarkResult | None:
        successes = self.successes
        return min(successes, key=lambda r: r.duration_ms) if successes else None

    @property
    def slowest(self) -> BenchmarkResult | None:
        successes = self.successes
        return max(successes, key=lambda r: r.duration_ms) if successes else None

    @property
    def speedup(self) -> float | None:
        """Slowest over fastest successful duration, None when undefined."""
        fastest, slowest = self.fastest, self.slowest
        if fastest is None or slowest is None or fastest.duration_ms <= 0:
            return None
        return slowest.duration_ms / fastest.duration_ms

    def summary(self) -> str:
        """Human-readable multi-line summary of the run."""
        if self.state is BenchmarkState.ABORTED:
            return f"Benchmark aborted: {self.error or 'unknown error'}"

        lines = [
            f"Benchmark: {len(self.results)} variants, "
            f"{len(self.successes)} succeeded, {len(self.failures)} failed "
            f"({self.wall_time_ms:.0f} ms wall time)",
        ]
        for result in self.results:
            line = f"{result.rank_label:>3} {result.pipeline_name}: {result.duration_display}"
            if self.has_accuracy:
                line += f", accuracy {result.accuracy_display}"
            if result.composite_score is not None:
                line += f", score {result.composite_score:.1f}"
            if not result.success:
                line += f" ({result.error or 'Unknown error'})"
            lines.append(line)

        winner = self.winner
        if winner is not None:
            if self.has_accuracy and winner.composite_score is not None:
                lines.append(
                    f"Winner: {winner.pipeline_name} "
                    f"(composite score {winner.composite_score:.1f}, "
                    f"accuracy {winner.accuracy_display}, {winner.duration_display})"
                )
            else:
                lines.append(f"Fastest: {winner.pipeline_name} ({winner.duration_display})")
        speedup = self.speedup
        if speedup is not None and len(self.successes) > 1:
            lines.append(f"Speedup (slowest / fastest): {speedup:.2f}x")
        return "\n".join(lines)
