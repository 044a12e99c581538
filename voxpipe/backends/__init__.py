"""Capability backends: transcribers, text cleaners, and audio processors."""

from __future__ import annotations

from voxpipe.backends.interface import (
    NoiseReducer,
    TextCleaner,
    Transcriber,
    VoiceActivityTrimmer,
)

__all__ = [
    "NoiseReducer",
    "TextCleaner",
    "Transcriber",
    "VoiceActivityTrimmer",
]
