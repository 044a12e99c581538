"""Built-in pipeline stages."""

from __future__ import annotations

from voxpipe.stages.cleaning import TextCleaningStage
from voxpipe.stages.noise import NoiseReductionStage
from voxpipe.stages.transcription import TranscriptionStage
from voxpipe.stages.vad import VoiceActivityTrimStage
from voxpipe.stages.validation import AudioValidationStage

__all__ = [
    "AudioValidationStage",
    "NoiseReductionStage",
    "TextCleaningStage",
    "TranscriptionStage",
    "VoiceActivityTrimStage",
]
