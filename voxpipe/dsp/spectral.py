"""STFT primitives shared by the noise gate and the VAD trimmer."""

from __future__ import annotations

from functools import lru_cache

import numpy as np
from scipy.signal import istft as _scipy_istft
from scipy.signal import stft as _scipy_stft

from voxpipe._audio_constants import DEFAULT_FFT_SIZE, DEFAULT_HOP_LENGTH, EPSILON


@lru_cache(maxsize=8)
def _hanning_window_cached(size: int) -> tuple[float, ...]:
    return tuple(np.hanning(size).astype(np.float32).tolist())


def hanning_window(size: int) -> np.ndarray:
    """Hann window of given size (float32, cached)."""
    return np.array(_hanning_window_cached(size), dtype=np.float32)


def stft(
    signal: np.ndarray,
    n_fft: int = DEFAULT_FFT_SIZE,
    hop_length: int = DEFAULT_HOP_LENGTH,
) -> np.ndarray:
    """Short-Time Fourier Transform with a Hann window.

    Returns:
        Complex64 spectrogram of shape ``(n_fft // 2 + 1, n_frames)``.
    """
    _freqs, _times, zxx = _scipy_stft(  # type: ignore[call-overload]
        signal,
        nperseg=n_fft,
        noverlap=n_fft - hop_length,
        window=hanning_window(n_fft),
    )
    return np.asarray(zxx, dtype=np.complex64)


def istft(
    spectrogram: np.ndarray,
    n_fft: int = DEFAULT_FFT_SIZE,
    hop_length: int = DEFAULT_HOP_LENGTH,
    length: int | None = None,
) -> np.ndarray:
    """Inverse of :func:`stft`.

    Args:
        spectrogram: Complex spectrogram from :func:`stft`.
        n_fft: FFT window size used during the forward transform.
        hop_length: Hop length used during the forward transform.
        length: Trim or zero-pad the output to this many samples.

    Returns:
        Float32 time-domain signal.
    """
    _times, reconstructed = _scipy_istft(  # type: ignore[call-overload]
        spectrogram,
        nperseg=n_fft,
        noverlap=n_fft - hop_length,
        window=hanning_window(n_fft),
    )
    out = np.asarray(reconstructed, dtype=np.float32)
    if length is not None:
        if len(out) >= length:
            out = out[:length]
        else:
            out = np.pad(out, (0, length - len(out)))
    return out


def spectral_flatness(frame: np.ndarray) -> float:
    """Spectral flatness (Wiener entropy) of a time-domain frame.

    Geometric mean over arithmetic mean of the magnitude spectrum. Close to
    1.0 for flat spectra (noise/silence), close to 0.0 for tonal content.
    """
    magnitude = np.maximum(np.abs(np.fft.rfft(frame)), EPSILON)
    arithmetic_mean = np.mean(magnitude)
    geometric_mean = np.exp(np.mean(np.log(magnitude)))
    return float(geometric_mean / arithmetic_mean)
