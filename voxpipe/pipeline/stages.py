"""Base interface for pipeline stages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from voxpipe.pipeline.context import PipelineContext
    from voxpipe.pipeline.results import StageResult


@dataclass(frozen=True, slots=True)
class StageOptions:
    """Options every stage accepts, read from the common stage settings.

    ``RetryCount`` and ``RetryDelayMs`` apply to any stage type; ``name``
    comes from the stage entry of the pipeline configuration.
    """

    name: str | None = None
    retry_count: int = 0
    retry_delay_s: float = 0.0

    def as_kwargs(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "retry_count": self.retry_count,
            "retry_delay_s": self.retry_delay_s,
        }


class Stage(ABC):
    """One named processing step of a pipeline.

    Stages are built once per pipeline build and reused across executions,
    including concurrent ones, so they must keep no per-run state on
    ``self``. Everything a run produces goes into the ``PipelineContext``.

    Args:
        name: Display name override. Defaults to ``default_name``.
        retry_count: Extra attempts the executor makes after an ERROR outcome.
        retry_delay_s: Pause between attempts, in seconds.
    """

    default_name: str = ""

    def __init__(
        self,
        name: str | None = None,
        *,
        retry_count: int = 0,
        retry_delay_s: float = 0.0,
    ) -> None:
        self._name = name or self.default_name or type(self).__name__
        self._retry_count = max(0, retry_count)
        self._retry_delay_s = max(0.0, retry_delay_s)

    @property
    def name(self) -> str:
        """Display name (e.g. 'Audio Validation')."""
        return self._name

    @property
    @abstractmethod
    def stage_type(self) -> str:
        """Stage type identifier used in configuration (e.g. 'AudioValidation')."""
        ...

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def retry_delay_s(self) -> float:
        return self._retry_delay_s

    @abstractmethod
    async def execute(self, context: PipelineContext) -> StageResult:
        """Run the stage over the shared context.

        Args:
            context: Per-run context. Read the fields this stage needs and
                write the fields downstream stages consume.

        Returns:
            SUCCESS, SOFT_STOP or ERROR outcome with optional custom metrics.

        Raises:
            OperationCancelledError: If cancellation was observed mid-stage.
                Any other exception is converted to an ERROR outcome by the
                executor.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"
