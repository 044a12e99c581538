"""Pipeline core: context, stages, executor, factory, registry and service."""

from __future__ import annotations

from voxpipe.pipeline.context import BuildContext, PipelineContext
from voxpipe.pipeline.executor import Pipeline
from voxpipe.pipeline.factory import StageFactory, default_stage_factory
from voxpipe.pipeline.registry import PipelineRegistry
from voxpipe.pipeline.results import (
    PipelineMetrics,
    PipelineResult,
    StageMetric,
    StageResult,
)
from voxpipe.pipeline.service import PipelineService
from voxpipe.pipeline.stages import Stage, StageOptions

__all__ = [
    "BuildContext",
    "Pipeline",
    "PipelineContext",
    "PipelineMetrics",
    "PipelineRegistry",
    "PipelineResult",
    "PipelineService",
    "Stage",
    "StageFactory",
    "StageMetric",
    "StageOptions",
    "StageResult",
    "default_stage_factory",
]
