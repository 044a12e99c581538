"""Configuration: runtime settings and pipeline definitions."""

from __future__ import annotations

from voxpipe.config.loader import PipelineConfigLoader
from voxpipe.config.pipelines import PipelineConfig, StageConfig
from voxpipe.config.settings import VoxpipeSettings, get_settings

__all__ = [
    "PipelineConfig",
    "PipelineConfigLoader",
    "StageConfig",
    "VoxpipeSettings",
    "get_settings",
]
