"""Centralized configuration via pydantic-settings.

All ``VOXPIPE_*`` environment variables are read, validated, and exposed here.
Logging env vars (``VOXPIPE_LOG_FORMAT``, ``VOXPIPE_LOG_LEVEL``) stay in
``voxpipe.logging`` so logging can be configured before settings load.

Usage::

    from voxpipe.config.settings import get_settings

    settings = get_settings()
    print(settings.cloud.has_api_key)      # bool
    print(settings.store.config_path)      # Path, expanded

``.env`` files in the working directory are loaded automatically.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from voxpipe._audio_constants import (
    DEFAULT_MAX_FILE_SIZE_MB,
    DEFAULT_MIN_DURATION_S,
    DEFAULT_SILENCE_THRESHOLD_DBFS,
)


class CloudSettings(BaseSettings):
    """OpenAI-compatible cloud API settings."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("VOXPIPE_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: str = Field(
        default="https://api.openai.com/v1", validation_alias="VOXPIPE_API_BASE_URL"
    )
    transcription_model: str = Field(
        default="whisper-1", validation_alias="VOXPIPE_TRANSCRIPTION_MODEL"
    )
    cleaning_model: str = Field(default="gpt-4o-mini", validation_alias="VOXPIPE_CLEANING_MODEL")
    http_timeout_s: float = Field(
        default=60.0, gt=0, le=600, validation_alias="VOXPIPE_HTTP_TIMEOUT_S"
    )
    max_retries: int = Field(default=2, ge=0, le=10, validation_alias="VOXPIPE_HTTP_MAX_RETRIES")
    retry_backoff_s: float = Field(
        default=0.5, ge=0, le=30, validation_alias="VOXPIPE_HTTP_RETRY_BACKOFF_S"
    )

    @property
    def has_api_key(self) -> bool:
        """True when a non-blank API key is configured."""
        return bool(self.api_key and self.api_key.strip())


class LocalModelSettings(BaseSettings):
    """Local speech-to-text model settings (faster-whisper)."""

    model_config = SettingsConfigDict(
        extra="ignore", populate_by_name=True, protected_namespaces=()
    )

    model_path: str | None = Field(default=None, validation_alias="VOXPIPE_LOCAL_MODEL_PATH")
    device: str = Field(default="auto", validation_alias="VOXPIPE_LOCAL_DEVICE")
    compute_type: str = Field(default="default", validation_alias="VOXPIPE_LOCAL_COMPUTE_TYPE")
    beam_size: int = Field(default=5, ge=1, le=20, validation_alias="VOXPIPE_LOCAL_BEAM_SIZE")

    @property
    def has_model(self) -> bool:
        """True when a local model path is configured."""
        return bool(self.model_path and self.model_path.strip())


class PipelineStoreSettings(BaseSettings):
    """Where pipeline configurations are persisted."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    config_dir: str = Field(
        default="~/.voxpipe/pipelines", validation_alias="VOXPIPE_PIPELINES_DIR"
    )
    default_pipeline: str | None = Field(
        default=None, validation_alias="VOXPIPE_DEFAULT_PIPELINE"
    )

    @property
    def config_path(self) -> Path:
        """Expanded configuration directory as a Path object."""
        return Path(self.config_dir).expanduser()


class AudioSettings(BaseSettings):
    """Input audio validation limits."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    max_file_size_mb: int = Field(
        default=DEFAULT_MAX_FILE_SIZE_MB, ge=1, le=500, validation_alias="VOXPIPE_MAX_FILE_SIZE_MB"
    )
    silence_threshold_dbfs: float = Field(
        default=DEFAULT_SILENCE_THRESHOLD_DBFS,
        ge=-120.0,
        le=0.0,
        validation_alias="VOXPIPE_SILENCE_THRESHOLD_DBFS",
    )
    min_duration_s: float = Field(
        default=DEFAULT_MIN_DURATION_S, ge=0, le=60, validation_alias="VOXPIPE_MIN_DURATION_S"
    )

    @property
    def max_file_size_bytes(self) -> int:
        """Maximum audio size in bytes (derived from MB setting)."""
        return self.max_file_size_mb * 1024 * 1024


class BenchmarkSettings(BaseSettings):
    """Benchmark ("deathmatch") tuning."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    max_concurrency: int = Field(
        default=4, ge=1, le=32, validation_alias="VOXPIPE_BENCHMARK_MAX_CONCURRENCY"
    )
    timeout_s: float | None = Field(
        default=None, gt=0, le=3600, validation_alias="VOXPIPE_BENCHMARK_TIMEOUT_S"
    )
    accuracy_weight: float = Field(
        default=0.8, ge=0.0, le=1.0, validation_alias="VOXPIPE_BENCHMARK_ACCURACY_WEIGHT"
    )

    @property
    def speed_weight(self) -> float:
        """Weight of normalized speed in the composite score."""
        return 1.0 - self.accuracy_weight

    @model_validator(mode="after")
    def _weight_in_range(self) -> BenchmarkSettings:
        if self.accuracy_weight == 0.0:
            msg = "accuracy_weight must be > 0 so accuracy can influence ranking"
            raise ValueError(msg)
        return self


class VoxpipeSettings(BaseSettings):
    """Root settings: aggregates all subsystem settings.

    Loads ``.env`` from the current directory when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    cloud: CloudSettings = Field(default_factory=CloudSettings)
    local: LocalModelSettings = Field(default_factory=LocalModelSettings)
    store: PipelineStoreSettings = Field(default_factory=PipelineStoreSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)


@lru_cache(maxsize=1)
def get_settings() -> VoxpipeSettings:
    """Return the singleton ``VoxpipeSettings`` instance.

    The result is cached; subsequent calls return the same object.
    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    return VoxpipeSettings()
