"""Centralized audio format constants for the voxpipe runtime.

Single source of truth for PCM format parameters, size limits, and
default thresholds shared across validation, DSP stages, settings,
and the benchmark engine.
"""

from __future__ import annotations

# --- PCM 16-bit format ---
# Scale factor for float32 <-> int16 conversion.
# int16 / 32768.0 maps to [-1.0, ~0.99997].
PCM_INT16_SCALE: float = 32768.0

# PCM 8-bit (unsigned): midpoint 128 maps to 0.0.
PCM_UINT8_SCALE: float = 128.0

# --- Container ---
RIFF_SIGNATURE: bytes = b"RIFF"
WAVE_SIGNATURE: bytes = b"WAVE"

# --- Recording format ---
STT_SAMPLE_RATE: int = 16000

# --- Validation defaults ---
# Upload limit of hosted Whisper-compatible APIs (25 MiB).
DEFAULT_MAX_FILE_SIZE_MB: int = 25
DEFAULT_SILENCE_THRESHOLD_DBFS: float = -60.0
DEFAULT_MIN_DURATION_S: float = 0.1

# --- VAD defaults ---
DEFAULT_VAD_THRESHOLD_DBFS: float = -40.0
DEFAULT_MIN_SPEECH_DURATION_MS: int = 250
DEFAULT_MIN_SILENCE_DURATION_MS: int = 100
DEFAULT_SPEECH_PAD_MS: int = 30
DEFAULT_VAD_FRAME_MS: int = 30
# Values above this indicate flat spectrum (white noise/silence).
DEFAULT_SPECTRAL_FLATNESS_THRESHOLD: float = 0.8

# --- Noise reduction defaults ---
DEFAULT_FFT_SIZE: int = 512
DEFAULT_HOP_LENGTH: int = 128
# Percentile of per-bin magnitudes used as the noise floor estimate.
DEFAULT_NOISE_PERCENTILE: float = 10.0
DEFAULT_NOISE_GATE_MULTIPLIER: float = 1.5
DEFAULT_NOISE_ATTENUATION: float = 0.1

# Epsilon to avoid log(0) and division by zero.
EPSILON: float = 1e-10
