"""Shared test helpers: WAV synthesis and scripted stage/backend doubles.

Usage:
    from tests.helpers import (
        SAMPLE_RATE,
        FakeTranscriber,
        ScriptedStage,
        make_silence,
        make_tone,
        make_wav,
    )
"""

from __future__ import annotations

import asyncio
import io
import wave
from collections.abc import Callable, Sequence

import numpy as np

from voxpipe._types import StageType, TranscriptionOutput
from voxpipe.backends.interface import TextCleaner, Transcriber
from voxpipe.pipeline.context import PipelineContext
from voxpipe.pipeline.factory import StageFactory
from voxpipe.pipeline.results import StageResult
from voxpipe.pipeline.stages import Stage
from voxpipe.stages.builtin import (
    build_audio_validation,
    build_noise_reduction,
    build_pass_through_cleaning,
    build_voice_activity_trim,
)
from voxpipe.stages.transcription import TranscriptionStage

SAMPLE_RATE = 16000


def make_tone(
    duration_s: float,
    *,
    frequency: float = 440.0,
    amplitude: float = 0.5,
    sample_rate: int = SAMPLE_RATE,
) -> np.ndarray:
    """Sine tone as float32 samples."""
    t = np.arange(int(sample_rate * duration_s)) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def make_silence(duration_s: float, *, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    return np.zeros(int(sample_rate * duration_s), dtype=np.float32)


def make_noise(
    duration_s: float, *, amplitude: float = 0.01, sample_rate: int = SAMPLE_RATE, seed: int = 0
) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return (amplitude * rng.standard_normal(int(sample_rate * duration_s))).astype(np.float32)


def make_wav(samples: np.ndarray, *, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Encode float32 samples as a PCM 16-bit mono WAV buffer."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())
    return buffer.getvalue()


Outcome = StageResult | BaseException


class ScriptedStage(Stage):
    """Stage returning (or raising) a scripted sequence of outcomes.

    The last outcome repeats once the script is exhausted. ``on_execute``
    runs before the outcome is produced and may mutate the context.
    """

    def __init__(
        self,
        name: str,
        outcomes: Sequence[Outcome] | None = None,
        *,
        stage_type: str = "Scripted",
        on_execute: Callable[[PipelineContext], None] | None = None,
        delay_s: float = 0.0,
        retry_count: int = 0,
        retry_delay_s: float = 0.0,
    ) -> None:
        super().__init__(name, retry_count=retry_count, retry_delay_s=retry_delay_s)
        self._outcomes = list(outcomes or [StageResult.success()])
        self._stage_type = stage_type
        self._on_execute = on_execute
        self._delay_s = delay_s
        self.calls = 0

    @property
    def stage_type(self) -> str:
        return self._stage_type

    async def execute(self, context: PipelineContext) -> StageResult:
        self.calls += 1
        if self._on_execute is not None:
            self._on_execute(context)
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        outcome = self._outcomes[min(self.calls, len(self._outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def set_raw_text(text: str) -> Callable[[PipelineContext], None]:
    def _apply(context: PipelineContext) -> None:
        context.raw_text = text

    return _apply


class FakeTranscriber(Transcriber):
    """Transcriber returning canned text and recording what it received."""

    def __init__(
        self,
        text: str = "hello world",
        *,
        language: str | None = "en",
        error: Exception | None = None,
        delay_s: float = 0.0,
    ) -> None:
        self._text = text
        self._language = language
        self._error = error
        self._delay_s = delay_s
        self.calls: list[dict[str, object]] = []

    @property
    def provider(self) -> str:
        return "Fake"

    async def transcribe(
        self,
        audio: bytes,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> TranscriptionOutput:
        self.calls.append({"audio": audio, "cancel_event": cancel_event, "timeout_s": timeout_s})
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        if self._error is not None:
            raise self._error
        return TranscriptionOutput(text=self._text, language=self._language)


class UpperCaseCleaner(TextCleaner):
    @property
    def provider(self) -> str:
        return "Upper"

    async def clean(
        self,
        text: str,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> str:
        return text.upper()


def fake_stage_factory(transcript: str = "hello world") -> StageFactory:
    """Built-in preprocessing stages with in-memory transcribers.

    Every stage type used by the benchmark variants is registered, so the
    factory builds them all without network access or a local model.
    """
    factory = StageFactory()
    factory.register(StageType.AUDIO_VALIDATION, build_audio_validation)
    factory.register(StageType.NOISE_REDUCTION, build_noise_reduction)
    factory.register(StageType.VOICE_ACTIVITY_TRIM, build_voice_activity_trim)
    factory.register(StageType.PASS_THROUGH_CLEANING, build_pass_through_cleaning)
    factory.register(
        StageType.CLOUD_TRANSCRIPTION,
        lambda _ctx, _settings, options: TranscriptionStage(
            FakeTranscriber(transcript), **options.as_kwargs()
        ),
    )
    factory.register(
        StageType.LOCAL_TRANSCRIPTION,
        lambda _ctx, _settings, options: TranscriptionStage(
            FakeTranscriber(transcript),
            stage_type=StageType.LOCAL_TRANSCRIPTION,
            **options.as_kwargs(),
        ),
    )
    return factory
