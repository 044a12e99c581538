"""Accuracy estimation, composite scoring and ranking for benchmark results.

Accuracy is a word-overlap estimate, not WER: the share of reference words
present anywhere in the transcript, minus a small penalty for extra words.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import TYPE_CHECKING

from voxpipe.benchmark.models import FAILED_LABEL, rank_label

if TYPE_CHECKING:
    from collections.abc import Sequence

    from voxpipe.benchmark.models import BenchmarkResult

DEFAULT_ACCURACY_WEIGHT = 0.8
EXTRA_WORDS_PENALTY = 0.1

_WORD_SEPARATORS = re.compile(r"[\s.,!?;:]+")


def tokenize(text: str) -> list[str]:
    """Lowercase ``text`` and split it on whitespace and ``. , ! ? ; :``."""
    return [token for token in _WORD_SEPARATORS.split(text.lower()) if token]


def calculate_accuracy(reference: str, transcription: str) -> float:
    """Estimate transcription accuracy against a reference, in percent.

    Args:
        reference: Ground-truth text.
        transcription: Text produced by a variant.

    Returns:
        Value in [0, 100]. 0.0 when either text has no words.
    """
    reference_words = tokenize(reference)
    transcription_words = tokenize(transcription)
    if not reference_words or not transcription_words:
        return 0.0

    present = set(transcription_words)
    matched = sum(1 for word in reference_words if word in present)
    base = matched / len(reference_words)
    excess = max(0, len(transcription_words) - len(reference_words)) / len(reference_words)
    accuracy = max(0.0, base - excess * EXTRA_WORDS_PENALTY)
    return min(100.0, accuracy * 100.0)


def normalized_speed(duration_ms: float, fastest_ms: float, slowest_ms: float) -> float:
    """Rescale a duration so the fastest scores 100 and the slowest 0."""
    spread = slowest_ms - fastest_ms
    if spread <= 0:
        return 100.0
    return (slowest_ms - duration_ms) / spread * 100.0


def composite_score(
    accuracy: float, speed: float, accuracy_weight: float = DEFAULT_ACCURACY_WEIGHT
) -> float:
    return accuracy * accuracy_weight + speed * (1.0 - accuracy_weight)


def rank_results(
    results: Sequence[BenchmarkResult],
    *,
    accuracy_weight: float = DEFAULT_ACCURACY_WEIGHT,
) -> list[BenchmarkResult]:
    """Score and order benchmark results.

    When any success has an accuracy, successes are ordered by composite
    score (descending); otherwise by duration (ascending). Ties keep their
    input order. Successes get ranks 1..n and the first is the winner.
    Failures follow, unranked, in input order.

    Args:
        results: Unscored results, in variant order.
        accuracy_weight: Weight of accuracy in the composite score.

    Returns:
        New list of scored results.
    """
    successes = [r for r in results if r.success]
    failures = [r for r in results if not r.success]

    if any(r.accuracy is not None for r in successes):
        fastest = min(r.duration_ms for r in successes)
        slowest = max(r.duration_ms for r in successes)
        scored = [
            replace(
                r,
                composite_score=composite_score(
                    r.accuracy if r.accuracy is not None else 0.0,
                    normalized_speed(r.duration_ms, fastest, slowest),
                    accuracy_weight,
                ),
            )
            for r in successes
        ]
        ordered = sorted(scored, key=lambda r: -(r.composite_score or 0.0))
    else:
        ordered = sorted(successes, key=lambda r: r.duration_ms)

    ranked = [
        replace(r, rank=position, rank_label=rank_label(position), is_winner=position == 1)
        for position, r in enumerate(ordered, start=1)
    ]
    unranked = [
        replace(
            r,
            rank=None,
            rank_label=FAILED_LABEL,
            is_winner=False,
            transcription=f"ERROR: {r.error or 'Unknown error'}",
        )
        for r in failures
    ]
    return ranked + unranked
