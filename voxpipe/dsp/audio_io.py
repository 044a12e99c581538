"""Audio decoding and encoding functions.

Converts between bytes (file formats) and numpy float32 arrays, and
computes the level measurements used by validation and the DSP stages.
"""

from __future__ import annotations

import io
import wave

import numpy as np
import soundfile as sf

from voxpipe._audio_constants import (
    EPSILON,
    PCM_INT16_SCALE,
    PCM_UINT8_SCALE,
    RIFF_SIGNATURE,
    WAVE_SIGNATURE,
)
from voxpipe.exceptions import AudioFormatError
from voxpipe.logging import get_logger

logger = get_logger("dsp.audio_io")


def has_wav_signature(audio_bytes: bytes) -> bool:
    """True if the buffer starts with a RIFF/WAVE header."""
    return (
        len(audio_bytes) >= 12
        and audio_bytes[0:4] == RIFF_SIGNATURE
        and audio_bytes[8:12] == WAVE_SIGNATURE
    )


def decode_audio(audio_bytes: bytes) -> tuple[np.ndarray, int]:
    """Decode audio bytes to numpy float32 mono array.

    Supports WAV, FLAC, OGG, and other formats via libsndfile.
    Multi-channel audio is averaged down to mono. A well-formed file with
    no frames decodes to an empty array.

    Args:
        audio_bytes: Audio file bytes.

    Returns:
        Tuple (float32 mono array, sample rate in Hz).

    Raises:
        AudioFormatError: If the format is unsupported or bytes are invalid.
    """
    if not audio_bytes:
        raise AudioFormatError("Empty audio (0 bytes)")

    try:
        data, sample_rate = sf.read(io.BytesIO(audio_bytes), dtype="float32")
    except Exception:
        # Fallback to wave stdlib (plain WAV PCM without complex headers)
        try:
            data, sample_rate = _decode_wav_stdlib(audio_bytes)
        except AudioFormatError:
            raise
        except Exception as wav_err:
            raise AudioFormatError(f"Could not decode audio: {wav_err}") from wav_err

    if data.ndim > 1:
        data = np.mean(data, axis=1)

    data = data.astype(np.float32)

    logger.debug(
        "audio_decoded",
        samples=len(data),
        sample_rate=sample_rate,
        duration_s=round(len(data) / sample_rate, 3) if sample_rate else 0.0,
    )

    return data, int(sample_rate)


def _decode_wav_stdlib(audio_bytes: bytes) -> tuple[np.ndarray, int]:
    try:
        with wave.open(io.BytesIO(audio_bytes), "rb") as wf:
            n_channels = wf.getnchannels()
            sampwidth = wf.getsampwidth()
            sample_rate = wf.getframerate()
            raw_data = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as err:
        raise AudioFormatError(f"Invalid WAV file: {err}") from err

    if sampwidth == 2:
        data = np.frombuffer(raw_data, dtype=np.int16).astype(np.float32) / PCM_INT16_SCALE
    elif sampwidth == 1:
        data = np.frombuffer(raw_data, dtype=np.uint8).astype(np.float32) / PCM_UINT8_SCALE - 1.0
    else:
        raise AudioFormatError(f"Sample width {sampwidth} bytes not supported (expected 1 or 2)")

    if n_channels > 1:
        data = data.reshape(-1, n_channels)
        data = np.mean(data, axis=1)

    return data, sample_rate


def encode_pcm16(audio: np.ndarray, sample_rate: int) -> bytes:
    """Encode numpy float32 array to WAV PCM 16-bit mono bytes (with header)."""
    audio_clamped = np.clip(audio, -1.0, 1.0)
    pcm_data = (audio_clamped * (PCM_INT16_SCALE - 1)).astype(np.int16)

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm_data.tobytes())

    return buffer.getvalue()


def rms(audio: np.ndarray) -> float:
    if len(audio) == 0:
        return 0.0
    # np.dot returns the sum of squares without allocating audio**2.
    return float(np.sqrt(np.dot(audio, audio) / len(audio)))


def rms_dbfs(audio: np.ndarray) -> float:
    return float(20.0 * np.log10(rms(audio) + EPSILON))


def peak_dbfs(audio: np.ndarray) -> float:
    if len(audio) == 0:
        return float(20.0 * np.log10(EPSILON))
    return float(20.0 * np.log10(float(np.max(np.abs(audio))) + EPSILON))


def duration_s(audio: np.ndarray, sample_rate: int) -> float:
    if sample_rate <= 0:
        return 0.0
    return len(audio) / sample_rate
