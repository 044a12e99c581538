"""Constructors for the built-in stage types.

Each constructor receives the shared BuildContext, the stage's typed
settings view and the common StageOptions. Settings keys are PascalCase
in configuration files (``MinSpeechDurationMs``); missing keys fall back to
the values in the settings snapshot or the stage defaults.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from voxpipe._audio_constants import (
    DEFAULT_FFT_SIZE,
    DEFAULT_HOP_LENGTH,
    DEFAULT_MIN_SILENCE_DURATION_MS,
    DEFAULT_MIN_SPEECH_DURATION_MS,
    DEFAULT_NOISE_ATTENUATION,
    DEFAULT_NOISE_GATE_MULTIPLIER,
    DEFAULT_NOISE_PERCENTILE,
    DEFAULT_SPEECH_PAD_MS,
    DEFAULT_VAD_FRAME_MS,
    DEFAULT_VAD_THRESHOLD_DBFS,
)
from voxpipe._types import StageType
from voxpipe.backends.faster_whisper import FasterWhisperTranscriber
from voxpipe.backends.openai_http import OpenAIChatCleaner, OpenAITranscriber
from voxpipe.backends.passthrough import PassThroughCleaner
from voxpipe.dsp.denoise import SpectralGateNoiseReducer
from voxpipe.dsp.vad import EnergyVoiceActivityTrimmer
from voxpipe.exceptions import StageBuildError
from voxpipe.stages.cleaning import TextCleaningStage
from voxpipe.stages.noise import NoiseReductionStage
from voxpipe.stages.transcription import TranscriptionStage
from voxpipe.stages.vad import VoiceActivityTrimStage
from voxpipe.stages.validation import AudioValidationStage

if TYPE_CHECKING:
    from voxpipe.config.stage_settings import StageSettings
    from voxpipe.pipeline.context import BuildContext
    from voxpipe.pipeline.factory import StageFactory
    from voxpipe.pipeline.stages import Stage, StageOptions


def build_audio_validation(
    ctx: BuildContext, settings: StageSettings, options: StageOptions
) -> Stage:
    audio = ctx.settings.audio
    return AudioValidationStage(
        max_file_size_mb=settings.get_float("MaxFileSizeMb", float(audio.max_file_size_mb)),
        silence_threshold_dbfs=settings.get_float(
            "SilenceThresholdDbfs", audio.silence_threshold_dbfs
        ),
        min_duration_s=settings.get_float("MinDurationSeconds", audio.min_duration_s),
        **options.as_kwargs(),
    )


def build_noise_reduction(
    ctx: BuildContext, settings: StageSettings, options: StageOptions
) -> Stage:
    reducer = SpectralGateNoiseReducer(
        n_fft=settings.get_int("FftSize", DEFAULT_FFT_SIZE),
        hop_length=settings.get_int("HopLength", DEFAULT_HOP_LENGTH),
        noise_percentile=settings.get_float("NoisePercentile", DEFAULT_NOISE_PERCENTILE),
        gate_multiplier=settings.get_float("GateMultiplier", DEFAULT_NOISE_GATE_MULTIPLIER),
        attenuation=settings.get_float("Attenuation", DEFAULT_NOISE_ATTENUATION),
    )
    return NoiseReductionStage(reducer, **options.as_kwargs())


def build_voice_activity_trim(
    ctx: BuildContext, settings: StageSettings, options: StageOptions
) -> Stage:
    trimmer = EnergyVoiceActivityTrimmer(
        threshold_dbfs=settings.get_float("ThresholdDbfs", DEFAULT_VAD_THRESHOLD_DBFS),
        min_speech_duration_ms=settings.get_int(
            "MinSpeechDurationMs", DEFAULT_MIN_SPEECH_DURATION_MS
        ),
        min_silence_duration_ms=settings.get_int(
            "MinSilenceDurationMs", DEFAULT_MIN_SILENCE_DURATION_MS
        ),
        speech_pad_ms=settings.get_int("SpeechPadMs", DEFAULT_SPEECH_PAD_MS),
        frame_ms=settings.get_int("FrameMs", DEFAULT_VAD_FRAME_MS),
    )
    return VoiceActivityTrimStage(
        trimmer,
        soft_stop_on_no_speech=settings.get_bool("SoftStopOnNoSpeech", False),
        **options.as_kwargs(),
    )


def build_cloud_transcription(
    ctx: BuildContext, settings: StageSettings, options: StageOptions
) -> Stage:
    cloud = ctx.settings.cloud
    transcriber = OpenAITranscriber(
        _require_api_key(StageType.CLOUD_TRANSCRIPTION, ctx, settings),
        base_url=settings.get_str("BaseUrl") or ctx.api_base_url,
        model=settings.get_str("Model") or cloud.transcription_model,
        language=settings.get_str("Language"),
        http_timeout_s=cloud.http_timeout_s,
        max_retries=cloud.max_retries,
        retry_backoff_s=cloud.retry_backoff_s,
        transport=ctx.http_transport,
    )
    return TranscriptionStage(
        transcriber, stage_type=StageType.CLOUD_TRANSCRIPTION, **options.as_kwargs()
    )


def build_local_transcription(
    ctx: BuildContext, settings: StageSettings, options: StageOptions
) -> Stage:
    model_path = settings.get_str("ModelPath") or ctx.local_model_path
    if not model_path:
        raise StageBuildError(
            StageType.LOCAL_TRANSCRIPTION.value,
            "local model path not found in stage settings or build context",
        )
    local = ctx.settings.local
    transcriber = FasterWhisperTranscriber(
        model_path,
        device=settings.get_str("Device") or local.device,
        compute_type=settings.get_str("ComputeType") or local.compute_type,
        beam_size=settings.get_int("BeamSize", local.beam_size),
        language=settings.get_str("Language"),
    )
    return TranscriptionStage(
        transcriber, stage_type=StageType.LOCAL_TRANSCRIPTION, **options.as_kwargs()
    )


def build_llm_text_cleaning(
    ctx: BuildContext, settings: StageSettings, options: StageOptions
) -> Stage:
    cloud = ctx.settings.cloud
    cleaner = OpenAIChatCleaner(
        _require_api_key(StageType.LLM_TEXT_CLEANING, ctx, settings),
        base_url=settings.get_str("BaseUrl") or ctx.api_base_url,
        model=settings.get_str("Model") or cloud.cleaning_model,
        temperature=settings.get_float("Temperature", 0.3),
        http_timeout_s=cloud.http_timeout_s,
        max_retries=cloud.max_retries,
        retry_backoff_s=cloud.retry_backoff_s,
        transport=ctx.http_transport,
    )
    return TextCleaningStage(
        cleaner, stage_type=StageType.LLM_TEXT_CLEANING, **options.as_kwargs()
    )


def build_pass_through_cleaning(
    ctx: BuildContext, settings: StageSettings, options: StageOptions
) -> Stage:
    return TextCleaningStage(
        PassThroughCleaner(), stage_type=StageType.PASS_THROUGH_CLEANING, **options.as_kwargs()
    )


def register_builtin_stages(factory: StageFactory) -> None:
    """Register every built-in stage type on ``factory``."""
    factory.register(StageType.AUDIO_VALIDATION, build_audio_validation)
    factory.register(StageType.NOISE_REDUCTION, build_noise_reduction)
    factory.register(StageType.VOICE_ACTIVITY_TRIM, build_voice_activity_trim)
    factory.register(StageType.CLOUD_TRANSCRIPTION, build_cloud_transcription)
    factory.register(StageType.LOCAL_TRANSCRIPTION, build_local_transcription)
    factory.register(StageType.LLM_TEXT_CLEANING, build_llm_text_cleaning)
    factory.register(StageType.PASS_THROUGH_CLEANING, build_pass_through_cleaning)


def _require_api_key(stage_type: StageType, ctx: BuildContext, settings: StageSettings) -> str:
    api_key = settings.get_str("ApiKey") or ctx.api_key
    if not api_key or not api_key.strip():
        raise StageBuildError(
            stage_type.value, "API key not found in stage settings or build context"
        )
    return api_key
