"""Energy-based voice activity trimming.

Frames are classified by RMS energy and spectral flatness: a frame is
speech when it is louder than the threshold AND its spectrum is not flat
(flat spectra indicate white noise or silence). Consecutive speech frames
form segments; short gaps are bridged, short blips dropped, and each kept
segment is padded before the segments are concatenated.
"""

from __future__ import annotations

import numpy as np

from voxpipe._audio_constants import (
    DEFAULT_MIN_SILENCE_DURATION_MS,
    DEFAULT_MIN_SPEECH_DURATION_MS,
    DEFAULT_SPECTRAL_FLATNESS_THRESHOLD,
    DEFAULT_SPEECH_PAD_MS,
    DEFAULT_VAD_FRAME_MS,
    DEFAULT_VAD_THRESHOLD_DBFS,
    EPSILON,
)
from voxpipe.backends.interface import VoiceActivityTrimmer
from voxpipe.dsp.audio_io import decode_audio, duration_s, encode_pcm16
from voxpipe.dsp.spectral import spectral_flatness
from voxpipe.logging import get_logger

logger = get_logger("dsp.vad")

METRIC_SILENCE_REMOVED_SECONDS = "SilenceRemovedSeconds"
METRIC_SPEECH_SEGMENTS = "SpeechSegmentsDetected"
METRIC_ORIGINAL_DURATION = "OriginalDurationSeconds"
METRIC_TRIMMED_DURATION = "TrimmedDurationSeconds"


class EnergyVoiceActivityTrimmer(VoiceActivityTrimmer):
    """Removes silence using per-frame energy and spectral flatness.

    When no speech is found the audio is returned untouched with zero
    segments; deciding whether that means "nothing to transcribe" is left
    to the caller.

    Args:
        threshold_dbfs: Minimum frame RMS (dBFS) for speech.
        min_speech_duration_ms: Segments shorter than this are discarded.
        min_silence_duration_ms: Gaps shorter than this are bridged.
        speech_pad_ms: Padding kept on both sides of each segment.
        frame_ms: Analysis frame length.
        flatness_threshold: Frames flatter than this are never speech.
    """

    def __init__(
        self,
        *,
        threshold_dbfs: float = DEFAULT_VAD_THRESHOLD_DBFS,
        min_speech_duration_ms: int = DEFAULT_MIN_SPEECH_DURATION_MS,
        min_silence_duration_ms: int = DEFAULT_MIN_SILENCE_DURATION_MS,
        speech_pad_ms: int = DEFAULT_SPEECH_PAD_MS,
        frame_ms: int = DEFAULT_VAD_FRAME_MS,
        flatness_threshold: float = DEFAULT_SPECTRAL_FLATNESS_THRESHOLD,
    ) -> None:
        if frame_ms <= 0:
            msg = f"frame_ms must be > 0, got {frame_ms}"
            raise ValueError(msg)
        self._threshold_dbfs = threshold_dbfs
        self._min_speech_ms = max(0, min_speech_duration_ms)
        self._min_silence_ms = max(0, min_silence_duration_ms)
        self._pad_ms = max(0, speech_pad_ms)
        self._frame_ms = frame_ms
        self._flatness_threshold = flatness_threshold

    @property
    def name(self) -> str:
        return "energy_vad"

    @property
    def threshold_dbfs(self) -> float:
        return self._threshold_dbfs

    def process(self, audio: bytes) -> tuple[bytes, dict[str, float]]:
        samples, sample_rate = decode_audio(audio)
        original = duration_s(samples, sample_rate)
        segments = self.detect_segments(samples, sample_rate)

        if not segments:
            logger.debug("no_speech_detected", duration_s=round(original, 3))
            return audio, {
                METRIC_ORIGINAL_DURATION: original,
                METRIC_TRIMMED_DURATION: original,
                METRIC_SILENCE_REMOVED_SECONDS: 0.0,
                METRIC_SPEECH_SEGMENTS: 0.0,
            }

        trimmed = np.concatenate([samples[start:end] for start, end in segments])
        trimmed_duration = duration_s(trimmed, sample_rate)
        removed = max(0.0, original - trimmed_duration)

        logger.debug(
            "silence_trimmed",
            segments=len(segments),
            removed_s=round(removed, 3),
        )

        return encode_pcm16(trimmed, sample_rate), {
            METRIC_ORIGINAL_DURATION: original,
            METRIC_TRIMMED_DURATION: trimmed_duration,
            METRIC_SILENCE_REMOVED_SECONDS: removed,
            METRIC_SPEECH_SEGMENTS: float(len(segments)),
            "DurationReductionPercentage": removed / original * 100.0 if original > 0 else 0.0,
        }

    def detect_segments(self, samples: np.ndarray, sample_rate: int) -> list[tuple[int, int]]:
        """Return padded speech segments as (start, end) sample indices."""
        frame_len = max(1, int(sample_rate * self._frame_ms / 1000))
        n_frames = len(samples) // frame_len
        if n_frames == 0:
            return []

        is_speech = [
            self._is_speech(samples[i * frame_len : (i + 1) * frame_len]) for i in range(n_frames)
        ]

        raw: list[tuple[int, int]] = []
        start: int | None = None
        for i, speech in enumerate(is_speech):
            if speech and start is None:
                start = i
            elif not speech and start is not None:
                raw.append((start * frame_len, i * frame_len))
                start = None
        if start is not None:
            raw.append((start * frame_len, n_frames * frame_len))

        min_gap = int(sample_rate * self._min_silence_ms / 1000)
        bridged: list[tuple[int, int]] = []
        for seg_start, seg_end in raw:
            if bridged and seg_start - bridged[-1][1] < min_gap:
                bridged[-1] = (bridged[-1][0], seg_end)
            else:
                bridged.append((seg_start, seg_end))

        min_len = int(sample_rate * self._min_speech_ms / 1000)
        kept = [(s, e) for s, e in bridged if e - s >= min_len]

        pad = int(sample_rate * self._pad_ms / 1000)
        padded: list[tuple[int, int]] = []
        for seg_start, seg_end in kept:
            seg_start = max(0, seg_start - pad)
            seg_end = min(len(samples), seg_end + pad)
            if padded and seg_start <= padded[-1][1]:
                padded[-1] = (padded[-1][0], seg_end)
            else:
                padded.append((seg_start, seg_end))
        return padded

    def _is_speech(self, frame: np.ndarray) -> bool:
        frame_rms = np.sqrt(np.dot(frame, frame) / len(frame))
        if 20.0 * np.log10(frame_rms + EPSILON) < self._threshold_dbfs:
            return False
        return spectral_flatness(frame) <= self._flatness_threshold
