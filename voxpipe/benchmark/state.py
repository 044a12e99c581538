"""BenchmarkRun: state machine for one benchmark run.

States:
    IDLE -> LOADING -> RUNNING -> SCORED -> COMPLETE

Rules:
- LOADING may end in ABORTED when the audio cannot be acquired.
- COMPLETE and ABORTED are terminal.
- Invalid transitions raise InvalidTransitionError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from voxpipe._types import BenchmarkState
from voxpipe.exceptions import InvalidTransitionError

if TYPE_CHECKING:
    import structlog

_VALID_TRANSITIONS: dict[BenchmarkState, frozenset[BenchmarkState]] = {
    BenchmarkState.IDLE: frozenset({BenchmarkState.LOADING}),
    BenchmarkState.LOADING: frozenset({BenchmarkState.RUNNING, BenchmarkState.ABORTED}),
    BenchmarkState.RUNNING: frozenset({BenchmarkState.SCORED}),
    BenchmarkState.SCORED: frozenset({BenchmarkState.COMPLETE}),
    BenchmarkState.COMPLETE: frozenset(),
    BenchmarkState.ABORTED: frozenset(),
}


class BenchmarkRun:
    """Tracks the state of a single benchmark run."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._state = BenchmarkState.IDLE
        self._logger = logger

    @property
    def state(self) -> BenchmarkState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[self._state]

    def transition(self, target: BenchmarkState) -> None:
        """Move to ``target``.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
        """
        if target not in _VALID_TRANSITIONS[self._state]:
            raise InvalidTransitionError(self._state.value, target.value)
        previous = self._state
        self._state = target
        if self._logger is not None:
            self._logger.debug("benchmark_state", previous=previous.value, state=target.value)
