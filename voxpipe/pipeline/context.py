"""Per-run and per-build contexts.

``PipelineContext`` is created for one execution and threaded through every
stage of that run. It exposes a closed set of typed fields instead of a
string-keyed bag; accessors for fields a stage requires raise
``MissingContextDataError`` rather than defaulting.

``BuildContext`` carries the shared, read-only dependencies used to
construct stages (credentials, local model path, logger, settings).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from voxpipe._types import ProgressUpdate
from voxpipe.exceptions import MissingContextDataError, OperationCancelledError
from voxpipe.logging import get_logger

if TYPE_CHECKING:
    import httpx
    import structlog

    from voxpipe.config.settings import VoxpipeSettings

ProgressSink = Callable[[ProgressUpdate], None]

_progress_logger = get_logger("pipeline.progress")


@dataclass(slots=True)
class PipelineContext:
    """Working state of one pipeline execution.

    Owned exclusively by the executor for the duration of a run. Stages
    read the fields their role requires and write the fields downstream
    stages consume.

    Attributes:
        audio: Current audio payload (WAV container bytes). Preprocessing
            stages replace it with their processed output.
        audio_duration_s: Duration of ``audio`` in seconds, once known.
        raw_text: Transcript produced by the transcription stage.
        cleaned_text: Transcript after the text-cleaning stage.
        language: Language reported by the transcriber, if any.
        metadata: Caller-supplied data, passed through untouched.
        cancel_event: Set by the caller to cancel the run.
        deadline: ``time.monotonic()`` value after which the run is
            considered timed out. None means no deadline.
        progress: Optional sink for advisory progress updates.
    """

    audio: bytes | None = None
    audio_duration_s: float | None = None
    raw_text: str | None = None
    cleaned_text: str | None = None
    language: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    deadline: float | None = None
    progress: ProgressSink | None = None

    @classmethod
    def for_audio(
        cls,
        audio: bytes,
        *,
        metadata: dict[str, Any] | None = None,
        progress: ProgressSink | None = None,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> PipelineContext:
        """Build a fresh context for one execution over ``audio``.

        Args:
            audio: Input audio buffer.
            metadata: Optional caller data carried through the run.
            progress: Optional progress sink.
            cancel_event: Cancellation signal; a private one is created if omitted.
            timeout_s: Relative deadline for the whole run, in seconds.
        """
        deadline = time.monotonic() + timeout_s if timeout_s is not None else None
        return cls(
            audio=audio,
            metadata=dict(metadata or {}),
            cancel_event=cancel_event if cancel_event is not None else asyncio.Event(),
            deadline=deadline,
            progress=progress,
        )

    def require_audio(self) -> bytes:
        if not self.audio:
            raise MissingContextDataError("audio")
        return self.audio

    def require_raw_text(self) -> str:
        if self.raw_text is None:
            raise MissingContextDataError("raw_text")
        return self.raw_text

    @property
    def final_text(self) -> str:
        """Cleaned text, else raw text, else empty."""
        if self.cleaned_text:
            return self.cleaned_text
        return self.raw_text or ""

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise OperationCancelledError()

    def remaining_s(self) -> float | None:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def report_progress(self, message: str, percent: int | None = None) -> None:
        """Send an advisory update to the progress sink.

        A sink that raises is logged and ignored; progress never fails a run.
        """
        if self.progress is None:
            return
        try:
            self.progress(ProgressUpdate(message=message, percent=percent))
        except Exception:
            _progress_logger.warning("progress_sink_failed", message=message, exc_info=True)


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Shared read-only dependencies for stage construction.

    Owned by the service layer and passed by reference to the factory.
    Safe to share across concurrent builds and executions.
    """

    settings: VoxpipeSettings
    logger: structlog.stdlib.BoundLogger
    api_key: str | None = None
    api_base_url: str = "https://api.openai.com/v1"
    local_model_path: str | None = None
    http_transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def from_settings(
        cls,
        settings: VoxpipeSettings | None = None,
        *,
        logger: structlog.stdlib.BoundLogger | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> BuildContext:
        """Derive a BuildContext from a settings snapshot.

        Args:
            settings: Settings to use. Defaults to ``get_settings()``.
            logger: Logger for built components. Defaults to the "pipeline" logger.
            http_transport: Transport for HTTP backends (tests inject a mock).
        """
        if settings is None:
            from voxpipe.config.settings import get_settings

            settings = get_settings()

        return cls(
            settings=settings,
            logger=logger if logger is not None else get_logger("pipeline"),
            api_key=settings.cloud.api_key if settings.cloud.has_api_key else None,
            api_base_url=settings.cloud.base_url,
            local_model_path=settings.local.model_path if settings.local.has_model else None,
            http_transport=http_transport,
        )

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def has_local_model(self) -> bool:
        return bool(self.local_model_path and self.local_model_path.strip())
