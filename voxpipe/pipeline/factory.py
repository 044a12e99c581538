"""Stage factory: maps stage-type identifiers to constructors.

Registration is explicit and closed. The host registers every stage type
it supports at startup (``default_stage_factory`` registers the built-ins);
a configuration naming any other type fails to build with
``UnknownStageTypeError``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from voxpipe._types import StageType
from voxpipe.config.stage_settings import StageSettings
from voxpipe.exceptions import EmptyPipelineError, StageBuildError, UnknownStageTypeError
from voxpipe.pipeline.executor import Pipeline
from voxpipe.pipeline.stages import Stage, StageOptions

if TYPE_CHECKING:
    from voxpipe.config.pipelines import PipelineConfig, StageConfig
    from voxpipe.pipeline.context import BuildContext

StageConstructor = Callable[["BuildContext", StageSettings, StageOptions], Stage]


class StageFactory:
    """Builds stages and pipelines from configuration."""

    def __init__(self) -> None:
        self._constructors: dict[str, StageConstructor] = {}

    def register(self, stage_type: str | StageType, constructor: StageConstructor) -> None:
        """Register the constructor for a stage type.

        Raises:
            ValueError: If the type is already registered.
        """
        key = stage_type.value if isinstance(stage_type, StageType) else stage_type
        if key in self._constructors:
            msg = f"Stage type already registered: {key}"
            raise ValueError(msg)
        self._constructors[key] = constructor

    @property
    def registered_types(self) -> list[str]:
        return sorted(self._constructors)

    def is_registered(self, stage_type: str) -> bool:
        return stage_type in self._constructors

    def create_stage(self, config: StageConfig, build_context: BuildContext) -> Stage:
        """Construct one stage.

        Raises:
            UnknownStageTypeError: No constructor for ``config.stage_type``.
            InvalidStageSettingError: A setting has the wrong type.
            StageBuildError: The constructor rejected the configuration.
        """
        constructor = self._constructors.get(config.stage_type)
        if constructor is None:
            raise UnknownStageTypeError(config.stage_type, self.registered_types)

        settings = StageSettings(config.stage_type, config.settings)
        options = StageOptions(
            name=config.name,
            retry_count=settings.get_int("RetryCount", 0),
            retry_delay_s=settings.get_float("RetryDelayMs", 0.0) / 1000.0,
        )
        try:
            return constructor(build_context, settings, options)
        except ValueError as e:
            raise StageBuildError(config.stage_type, str(e)) from e

    def build(self, config: PipelineConfig, build_context: BuildContext) -> Pipeline:
        """Construct a Pipeline from its configuration.

        Disabled stages are skipped. Errors raised while building any stage
        propagate; the caller decides whether to skip the pipeline.

        Raises:
            EmptyPipelineError: No enabled stages.
            ConfigError: Any stage failed to build.
        """
        stages = [self.create_stage(stage, build_context) for stage in config.enabled_stages]
        if not stages:
            raise EmptyPipelineError(config.name)

        build_context.logger.debug(
            "pipeline_built",
            pipeline=config.name,
            stages=[stage.name for stage in stages],
        )
        return Pipeline(
            config.name,
            stages,
            description=config.description,
            logger=build_context.logger,
        )


def default_stage_factory() -> StageFactory:
    """Return a factory with every built-in stage type registered."""
    from voxpipe.stages.builtin import register_builtin_stages

    factory = StageFactory()
    register_builtin_stages(factory)
    return factory
