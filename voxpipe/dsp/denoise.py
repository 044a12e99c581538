"""Spectral-gate noise reduction.

Estimates a stationary noise floor per frequency bin from a low percentile
of the STFT magnitudes, then attenuates every time-frequency cell that does
not rise clearly above that floor. Speech energy, being non-stationary and
well above the floor, passes through; steady hiss and hum are suppressed.
"""

from __future__ import annotations

import numpy as np

from voxpipe._audio_constants import (
    DEFAULT_FFT_SIZE,
    DEFAULT_HOP_LENGTH,
    DEFAULT_NOISE_ATTENUATION,
    DEFAULT_NOISE_GATE_MULTIPLIER,
    DEFAULT_NOISE_PERCENTILE,
    EPSILON,
)
from voxpipe.backends.interface import NoiseReducer
from voxpipe.dsp.audio_io import decode_audio, encode_pcm16, rms
from voxpipe.dsp.spectral import istft, stft
from voxpipe.logging import get_logger

logger = get_logger("dsp.denoise")

METRIC_NOISE_REDUCTION_DB = "NoiseReductionDB"
METRIC_SIGNAL_CHANGE_PERCENT = "SignalChangePercent"


class SpectralGateNoiseReducer(NoiseReducer):
    """Stationary spectral-gate denoiser.

    Args:
        n_fft: FFT window size.
        hop_length: Hop between successive STFT frames.
        noise_percentile: Percentile of per-bin magnitudes taken as the noise floor.
        gate_multiplier: A cell passes when its magnitude exceeds floor * multiplier.
        attenuation: Gain applied to gated cells (0.0 mutes, 1.0 leaves untouched).
    """

    def __init__(
        self,
        *,
        n_fft: int = DEFAULT_FFT_SIZE,
        hop_length: int = DEFAULT_HOP_LENGTH,
        noise_percentile: float = DEFAULT_NOISE_PERCENTILE,
        gate_multiplier: float = DEFAULT_NOISE_GATE_MULTIPLIER,
        attenuation: float = DEFAULT_NOISE_ATTENUATION,
    ) -> None:
        if n_fft < 2 or n_fft % 2:
            msg = f"n_fft must be an even number >= 2, got {n_fft}"
            raise ValueError(msg)
        # Hann overlap-add only reconstructs with at least 50% overlap.
        if hop_length <= 0 or hop_length > n_fft // 2:
            msg = f"hop_length must be in (0, n_fft // 2], got {hop_length}"
            raise ValueError(msg)
        if not 0.0 <= attenuation <= 1.0:
            msg = f"attenuation must be in [0, 1], got {attenuation}"
            raise ValueError(msg)
        self._n_fft = n_fft
        self._hop_length = hop_length
        self._noise_percentile = noise_percentile
        self._gate_multiplier = gate_multiplier
        self._attenuation = attenuation

    @property
    def name(self) -> str:
        return "spectral_gate"

    def process(self, audio: bytes) -> tuple[bytes, dict[str, float]]:
        samples, sample_rate = decode_audio(audio)
        denoised = self.denoise(samples)

        rms_original = rms(samples)
        rms_processed = rms(denoised)
        if rms_original > 0:
            change_percent = (rms_original - rms_processed) / rms_original * 100.0
        else:
            change_percent = 0.0
        reduction_db = float(20.0 * np.log10((rms_original + EPSILON) / (rms_processed + EPSILON)))

        logger.debug(
            "noise_reduced",
            samples=len(samples),
            reduction_db=round(reduction_db, 2),
        )

        return encode_pcm16(denoised, sample_rate), {
            METRIC_NOISE_REDUCTION_DB: reduction_db,
            METRIC_SIGNAL_CHANGE_PERCENT: float(change_percent),
            "RMSOriginal": rms_original,
            "RMSProcessed": rms_processed,
        }

    def denoise(self, samples: np.ndarray) -> np.ndarray:
        """Apply the spectral gate to float32 samples.

        Signals shorter than one FFT window are returned unchanged.
        """
        if len(samples) < self._n_fft:
            return samples.astype(np.float32, copy=True)

        spectrogram = stft(samples, n_fft=self._n_fft, hop_length=self._hop_length)
        magnitude = np.abs(spectrogram)

        noise_floor = np.percentile(magnitude, self._noise_percentile, axis=1, keepdims=True)
        threshold = noise_floor * self._gate_multiplier
        gain = np.where(magnitude > threshold, 1.0, self._attenuation).astype(np.float32)

        # Smooth across time to avoid musical-noise artifacts at gate edges.
        if gain.shape[1] >= 3:
            kernel = np.array([0.25, 0.5, 0.25], dtype=np.float32)
            padded = np.pad(gain, ((0, 0), (1, 1)), mode="edge")
            gain = (
                kernel[0] * padded[:, :-2] + kernel[1] * padded[:, 1:-1] + kernel[2] * padded[:, 2:]
            )

        return istft(
            spectrogram * gain,
            n_fft=self._n_fft,
            hop_length=self._hop_length,
            length=len(samples),
        )
