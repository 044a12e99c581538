"""Pipeline configuration store.

One YAML file per pipeline (``<sanitized name>.pipeline.yaml``) in a
directory. A file that cannot be read or validated is logged and skipped;
it never prevents the other pipelines from loading. When the store holds
no configuration, a default set is synthesized from what the BuildContext
offers (API key, local model path) and persisted.

Credentials are never written to disk: stages that need an API key fall
back to the BuildContext at build time.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from voxpipe._audio_constants import (
    DEFAULT_MIN_SILENCE_DURATION_MS,
    DEFAULT_MIN_SPEECH_DURATION_MS,
    DEFAULT_VAD_THRESHOLD_DBFS,
)
from voxpipe._types import StageType
from voxpipe.config.pipelines import PIPELINE_FILE_SUFFIX, PipelineConfig, StageConfig
from voxpipe.exceptions import ConfigError
from voxpipe.logging import get_logger

if TYPE_CHECKING:
    import structlog

    from voxpipe.pipeline.context import BuildContext

FAST_CLOUD = "FastCloud"
LOCAL_PRIVACY = "LocalPrivacy"
HYBRID = "Hybrid"

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')

_VAD_DEFAULT_SETTINGS = {
    "ThresholdDbfs": DEFAULT_VAD_THRESHOLD_DBFS,
    "MinSpeechDurationMs": DEFAULT_MIN_SPEECH_DURATION_MS,
    "MinSilenceDurationMs": DEFAULT_MIN_SILENCE_DURATION_MS,
}


def sanitize_file_stem(name: str) -> str:
    """Turn a pipeline name into a safe file stem.

    Runs of characters that are invalid in file names become ``_``;
    trailing dots and spaces are dropped.
    """
    parts = [part for part in _UNSAFE_FILENAME_CHARS.split(name) if part]
    stem = "_".join(parts).rstrip(". ")
    return stem or "pipeline"


class PipelineConfigLoader:
    """Reads and writes pipeline configurations in a directory.

    Args:
        config_dir: Directory holding ``*.pipeline.yaml`` files. Created on
            first save.
        logger: Logger handle. Defaults to the "config.loader" logger.
    """

    def __init__(
        self,
        config_dir: str | Path,
        *,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._config_dir = Path(config_dir).expanduser()
        self._logger = logger if logger is not None else get_logger("config.loader")

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    def path_for(self, name: str) -> Path:
        return self._config_dir / f"{sanitize_file_stem(name)}{PIPELINE_FILE_SUFFIX}"

    def load_all(self) -> list[PipelineConfig]:
        """Load every readable configuration, sorted by file name.

        Invalid files are logged and skipped.
        """
        if not self._config_dir.is_dir():
            self._logger.info("config_dir_missing", path=str(self._config_dir))
            return []

        files = sorted(self._config_dir.glob(f"*{PIPELINE_FILE_SUFFIX}"))
        configs: list[PipelineConfig] = []
        for path in files:
            try:
                config = PipelineConfig.from_yaml_path(path)
            except ConfigError as e:
                self._logger.warning("config_skipped", path=str(path), error=str(e))
                continue
            configs.append(config)
            self._logger.debug("config_loaded", pipeline=config.name, path=path.name)

        self._logger.info("configs_loaded", count=len(configs), files=len(files))
        return configs

    def load_file(self, path: str | Path) -> PipelineConfig:
        """Load a single configuration file.

        Raises:
            ConfigParseError: File missing, unreadable, or not YAML.
            ConfigValidationError: Fields missing or of the wrong type.
        """
        return PipelineConfig.from_yaml_path(path)

    def load_by_name(self, name: str) -> PipelineConfig | None:
        """Return the configuration named ``name`` (case-insensitive), if any."""
        wanted = name.casefold()
        for config in self.load_all():
            if config.name.casefold() == wanted:
                return config
        return None

    def save(self, config: PipelineConfig) -> Path:
        """Write ``config`` to its file, replacing any previous version."""
        self._config_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(config.name)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(config.to_yaml_string(), encoding="utf-8")
        tmp.replace(path)
        self._logger.info("config_saved", pipeline=config.name, path=path.name)
        return path

    def delete(self, name: str) -> bool:
        """Remove the file of the named configuration. Returns False if absent."""
        path = self.path_for(name)
        if not path.exists():
            return False
        path.unlink()
        self._logger.info("config_deleted", pipeline=name, path=path.name)
        return True

    def ensure_defaults(self, build_context: BuildContext) -> list[PipelineConfig]:
        """Synthesize and persist default configurations if the store is empty.

        - API key present: ``FastCloud``.
        - Local model path present: ``LocalPrivacy``.
        - Both present: ``Hybrid`` as well.

        Returns:
            The configurations now in the store (existing or newly created).
        """
        existing = self.load_all()
        if existing:
            self._logger.debug("defaults_skipped", existing=len(existing))
            return existing

        defaults = default_pipeline_configs(
            has_api_key=build_context.has_api_key,
            has_local_model=build_context.has_local_model,
        )
        if not defaults:
            self._logger.warning(
                "no_default_pipelines",
                reason="neither an API key nor a local model path is configured",
            )
            return []

        for config in defaults:
            self.save(config)
        self._logger.info("defaults_created", pipelines=[c.name for c in defaults])
        return defaults


def default_pipeline_configs(*, has_api_key: bool, has_local_model: bool) -> list[PipelineConfig]:
    """Build the default configuration set for the available credentials."""

    def preprocessing() -> list[StageConfig]:
        return [
            StageConfig(type=StageType.AUDIO_VALIDATION.value),
            StageConfig(type=StageType.NOISE_REDUCTION.value),
            StageConfig(
                type=StageType.VOICE_ACTIVITY_TRIM.value, settings=dict(_VAD_DEFAULT_SETTINGS)
            ),
        ]

    configs: list[PipelineConfig] = []
    if has_api_key:
        configs.append(
            PipelineConfig(
                name=FAST_CLOUD,
                description=(
                    "Cloud transcription with LLM cleanup "
                    "(with noise reduction and voice activity trimming)"
                ),
                stages=[
                    *preprocessing(),
                    StageConfig(type=StageType.CLOUD_TRANSCRIPTION.value),
                    StageConfig(type=StageType.LLM_TEXT_CLEANING.value),
                ],
            )
        )
    if has_local_model:
        configs.append(
            PipelineConfig(
                name=LOCAL_PRIVACY,
                description="Fully offline transcription with a local model (no API calls)",
                stages=[
                    *preprocessing(),
                    StageConfig(type=StageType.LOCAL_TRANSCRIPTION.value),
                    StageConfig(type=StageType.PASS_THROUGH_CLEANING.value),
                ],
            )
        )
    if has_api_key and has_local_model:
        configs.append(
            PipelineConfig(
                name=HYBRID,
                description="Local transcription for privacy, cloud cleanup for quality",
                stages=[
                    *preprocessing(),
                    StageConfig(type=StageType.LOCAL_TRANSCRIPTION.value),
                    StageConfig(type=StageType.LLM_TEXT_CLEANING.value),
                ],
            )
        )
    return configs
