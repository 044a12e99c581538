"""Capability contracts consumed by the built-in stages.

Stages depend only on these ABCs. Concrete backends (HTTP clients, local
model inference, DSP) are injected by the stage factory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncio

    from voxpipe._types import TranscriptionOutput


class Transcriber(ABC):
    """Converts an audio buffer to text.

    Implementations may be network-bound (cloud API) or CPU/GPU-bound
    (local model). Either way they must honor ``cancel_event`` and
    ``timeout_s``.
    """

    @property
    @abstractmethod
    def provider(self) -> str:
        """Short provider label used in logs and error messages (e.g. 'OpenAI')."""
        ...

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> TranscriptionOutput:
        """Transcribe one audio buffer.

        Args:
            audio: WAV container bytes.
            cancel_event: When set, the call stops as soon as possible.
            timeout_s: Upper bound for the whole call, including retries.

        Returns:
            TranscriptionOutput with text and optional detected language.

        Raises:
            TranscriptionError: If the provider failed.
            OperationCancelledError: If ``cancel_event`` was set mid-call.
            DeadlineExceededError: If ``timeout_s`` elapsed.
        """
        ...


class TextCleaner(ABC):
    """Rewrites or normalizes a transcript."""

    @property
    @abstractmethod
    def provider(self) -> str: ...

    @abstractmethod
    async def clean(
        self,
        text: str,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> str:
        """Return the cleaned text.

        Raises:
            TextCleaningError: If the provider failed.
        """
        ...


class NoiseReducer(ABC):
    """Removes background noise from an audio buffer.

    ``process`` is synchronous and CPU-bound; stages call it from a worker
    thread.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def process(self, audio: bytes) -> tuple[bytes, dict[str, float]]:
        """Denoise a WAV buffer.

        Returns:
            Tuple (processed WAV bytes, metrics). Metrics include
            ``NoiseReductionDB`` and ``SignalChangePercent``.
        """
        ...


class VoiceActivityTrimmer(ABC):
    """Removes silence from an audio buffer, keeping speech segments."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def process(self, audio: bytes) -> tuple[bytes, dict[str, float]]:
        """Trim silence from a WAV buffer.

        Returns:
            Tuple (trimmed WAV bytes, metrics). Metrics include
            ``SilenceRemovedSeconds``, ``SpeechSegmentsDetected`` and
            ``TrimmedDurationSeconds``.
        """
        ...
