"""Pipeline configuration models and their YAML (de)serialization.

A pipeline configuration is the unit of persistence: a name, an enabled
flag and an ordered list of stage entries. Each stage entry names a stage
type and carries a free-form settings mapping; unknown settings keys are
kept so newer files still load on older builds.

Example ``fast-cloud.pipeline.yaml``::

    name: FastCloud
    description: Cloud transcription with light preprocessing
    enabled: true
    stages:
      - type: AudioValidation
      - type: VoiceActivityTrim
        settings:
          ThresholdDbfs: -40.0
          MinSpeechDurationMs: 250
      - type: CloudTranscription
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from voxpipe.exceptions import ConfigParseError, ConfigValidationError

PIPELINE_FILE_SUFFIX = ".pipeline.yaml"


class StageConfig(BaseModel):
    """One stage entry of a pipeline configuration."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    stage_type: str = Field(alias="type")
    name: str | None = None
    enabled: bool = True
    settings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("stage_type")
    @classmethod
    def stage_type_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "Stage type must not be empty"
            raise ValueError(msg)
        return v.strip()

    @field_validator("settings", mode="before")
    @classmethod
    def settings_none_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class PipelineConfig(BaseModel):
    """Named, ordered list of stages.

    Stage order in ``stages`` is the execution order.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    description: str = ""
    enabled: bool = True
    stages: list[StageConfig] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "Pipeline name must not be empty"
            raise ValueError(msg)
        return v.strip()

    @property
    def enabled_stages(self) -> list[StageConfig]:
        """Stages that will be built, in order."""
        return [stage for stage in self.stages if stage.enabled]

    @classmethod
    def from_yaml_path(cls, path: str | Path) -> PipelineConfig:
        """Load a pipeline configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigParseError(str(path), "File not found")

        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigParseError(str(path), f"Error reading file: {e}") from e

        return cls.from_yaml_string(raw, source_path=str(path))

    @classmethod
    def from_yaml_string(cls, raw: str, source_path: str = "<string>") -> PipelineConfig:
        """Load a pipeline configuration from a YAML string."""
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigParseError(source_path, f"Invalid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ConfigParseError(source_path, "YAML content must be a mapping")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigValidationError(source_path, errors) from e

    def to_yaml_string(self) -> str:
        """Serialize to YAML, preserving stage order and settings."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        for stage in data["stages"]:
            if not stage["settings"]:
                del stage["settings"]
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
