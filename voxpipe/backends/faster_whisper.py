"""Local transcription backend using faster-whisper.

faster-whisper is an optional dependency (``pip install voxpipe[local]``);
the import is guarded and a missing library surfaces as
``BackendUnavailableError`` on first use. Inference is CPU/GPU-bound and
runs in a worker thread so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Any

from voxpipe._audio_constants import STT_SAMPLE_RATE
from voxpipe._types import TranscriptionOutput
from voxpipe.backends.interface import Transcriber
from voxpipe.exceptions import (
    BackendUnavailableError,
    DeadlineExceededError,
    OperationCancelledError,
    TranscriptionError,
)
from voxpipe.logging import get_logger

if TYPE_CHECKING:
    import numpy as np

try:
    from faster_whisper import WhisperModel as _WhisperModel
except ImportError:
    _WhisperModel = None

logger = get_logger("backends.faster_whisper")


class FasterWhisperTranscriber(Transcriber):
    """Transcriber backed by a local ``faster_whisper.WhisperModel``.

    The model is loaded lazily on the first call and shared by every
    subsequent call (and every pipeline built with this instance).

    Args:
        model_path: Model directory or size name (e.g. "base.en").
        device: "auto", "cpu" or "cuda".
        compute_type: CTranslate2 compute type (e.g. "int8", "float16", "default").
        beam_size: Beam width for decoding.
        language: Optional ISO language hint.
    """

    def __init__(
        self,
        model_path: str,
        *,
        device: str = "auto",
        compute_type: str = "default",
        beam_size: int = 5,
        language: str | None = None,
    ) -> None:
        if not model_path or not model_path.strip():
            msg = "model_path cannot be empty"
            raise ValueError(msg)
        self._model_path = model_path
        self._device = device
        self._compute_type = compute_type
        self._beam_size = beam_size
        self._language = language
        self._model: Any = None
        self._load_lock = threading.Lock()

    @property
    def provider(self) -> str:
        return "faster-whisper"

    @property
    def model_path(self) -> str:
        return self._model_path

    async def transcribe(
        self,
        audio: bytes,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> TranscriptionOutput:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("Transcription")

        work = asyncio.ensure_future(asyncio.to_thread(self._transcribe_sync, audio))
        waiters: set[asyncio.Future[Any]] = {work}
        cancel_waiter: asyncio.Future[Any] | None = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _pending = await asyncio.wait(
                waiters, timeout=timeout_s, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if work in done:
            return work.result()
        # The worker thread cannot be interrupted; its result is discarded.
        work.add_done_callback(_discard_result)
        if cancel_waiter is not None and cancel_waiter in done:
            raise OperationCancelledError("Transcription")
        raise DeadlineExceededError(timeout_s or 0.0)

    def _ensure_model(self) -> Any:
        with self._load_lock:
            if self._model is not None:
                return self._model
            if _WhisperModel is None:
                raise BackendUnavailableError(
                    self.provider,
                    "faster-whisper is not installed. Install with: pip install voxpipe[local]",
                )
            logger.info(
                "loading_model",
                model_path=self._model_path,
                device=self._device,
                compute_type=self._compute_type,
            )
            try:
                self._model = _WhisperModel(
                    self._model_path, device=self._device, compute_type=self._compute_type
                )
            except Exception as e:
                raise BackendUnavailableError(
                    self.provider, f"Failed to load model '{self._model_path}': {e}"
                ) from e
            logger.info("model_loaded", model_path=self._model_path)
            return self._model

    def _transcribe_sync(self, audio: bytes) -> TranscriptionOutput:
        from voxpipe.dsp.audio_io import decode_audio

        model = self._ensure_model()
        samples, sample_rate = decode_audio(audio)
        samples = _to_model_rate(samples, sample_rate)
        try:
            segments, info = model.transcribe(
                samples,
                beam_size=self._beam_size,
                language=self._language,
            )
            text = " ".join(segment.text.strip() for segment in segments).strip()
        except Exception as e:
            raise TranscriptionError(self.provider, str(e)) from e
        return TranscriptionOutput(text=text, language=getattr(info, "language", None))


def _to_model_rate(samples: np.ndarray, sample_rate: int) -> np.ndarray:
    """Resample to the 16 kHz input faster-whisper expects."""
    if sample_rate == STT_SAMPLE_RATE:
        return samples

    from math import gcd

    import numpy as np
    from scipy.signal import resample_poly

    divisor = gcd(sample_rate, STT_SAMPLE_RATE)
    resampled = resample_poly(samples, STT_SAMPLE_RATE // divisor, sample_rate // divisor)
    return np.asarray(resampled, dtype=np.float32)


def _discard_result(future: asyncio.Future[Any]) -> None:
    if not future.cancelled():
        future.exception()
