"""Pipeline service: the outward execute entry point.

Wraps a PipelineRegistry. Every call builds a fresh PipelineContext and
returns a PipelineResult; unknown pipelines and a missing default come
back as failed results, never as exceptions.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from voxpipe.config.loader import PipelineConfigLoader
from voxpipe.exceptions import PipelineNotFoundError
from voxpipe.logging import get_logger
from voxpipe.pipeline.context import BuildContext, PipelineContext
from voxpipe.pipeline.factory import default_stage_factory
from voxpipe.pipeline.registry import PipelineRegistry
from voxpipe.pipeline.results import PipelineMetrics, PipelineResult

if TYPE_CHECKING:
    import structlog

    from voxpipe.config.settings import VoxpipeSettings
    from voxpipe.pipeline.context import ProgressSink
    from voxpipe.pipeline.executor import Pipeline
    from voxpipe.pipeline.factory import StageFactory

NO_DEFAULT_PIPELINE_MESSAGE = (
    "No default pipeline configured. Please configure a pipeline in settings."
)


class PipelineService:
    """Executes audio through the default (or a named) pipeline.

    Args:
        registry: Loaded pipeline registry.
        logger: Logger handle. Defaults to the "pipeline.service" logger.
    """

    def __init__(
        self,
        registry: PipelineRegistry,
        *,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._registry = registry
        self._logger = logger if logger is not None else get_logger("pipeline.service")

    @classmethod
    def from_settings(
        cls,
        settings: VoxpipeSettings | None = None,
        *,
        build_context: BuildContext | None = None,
        factory: StageFactory | None = None,
        loader: PipelineConfigLoader | None = None,
        seed_defaults: bool = True,
    ) -> PipelineService:
        """Assemble the service: seed defaults, load configurations, build pipelines.

        Args:
            settings: Settings snapshot. Defaults to ``get_settings()``.
            build_context: Overrides the BuildContext derived from settings.
            factory: Overrides the built-in stage factory.
            loader: Overrides the loader for ``settings.store.config_path``.
            seed_defaults: Write default configurations when the store is empty.
        """
        if build_context is None:
            build_context = BuildContext.from_settings(settings)
        settings = build_context.settings
        if loader is None:
            loader = PipelineConfigLoader(
                settings.store.config_path, logger=build_context.logger
            )

        configs = loader.ensure_defaults(build_context) if seed_defaults else loader.load_all()
        registry = PipelineRegistry(
            factory if factory is not None else default_stage_factory(),
            build_context,
            loader=loader,
            logger=build_context.logger,
        )
        registry.load(configs, default_name=settings.store.default_pipeline)
        return cls(registry, logger=build_context.logger)

    @property
    def registry(self) -> PipelineRegistry:
        return self._registry

    @property
    def pipeline_names(self) -> list[str]:
        return self._registry.pipeline_names

    @property
    def default_pipeline_name(self) -> str | None:
        return self._registry.default_name

    def set_default_pipeline(self, name: str) -> None:
        """Raises PipelineNotFoundError if ``name`` is not loaded."""
        self._registry.set_default(name)

    def reload(self) -> list[str]:
        """Re-read configurations and rebuild every pipeline."""
        names = self._registry.reload()
        self._logger.info("pipelines_reloaded", pipelines=names)
        return names

    async def execute(
        self,
        audio: bytes,
        *,
        metadata: dict[str, Any] | None = None,
        progress: ProgressSink | None = None,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
        pipeline_name: str | None = None,
    ) -> PipelineResult:
        """Run ``audio`` through a pipeline.

        Args:
            audio: Input WAV buffer.
            metadata: Caller data carried through the context.
            progress: Optional progress sink.
            cancel_event: Set to cancel the run.
            timeout_s: Deadline for the whole run.
            pipeline_name: Pipeline to use; the default pipeline when None.

        Returns:
            PipelineResult. Never raises for pipeline or stage failures.
        """
        if pipeline_name is not None:
            try:
                pipeline = self._registry.get(pipeline_name)
            except PipelineNotFoundError as e:
                self._logger.warning("pipeline_not_found", pipeline=pipeline_name)
                return PipelineResult.failed(PipelineMetrics(pipeline_name=pipeline_name), str(e))
        else:
            default = self._registry.get_default()
            if default is None:
                self._logger.warning("no_default_pipeline")
                return PipelineResult.failed(
                    PipelineMetrics(pipeline_name=""), NO_DEFAULT_PIPELINE_MESSAGE
                )
            pipeline = default

        return await self._execute_pipeline(
            pipeline,
            PipelineContext.for_audio(
                audio,
                metadata=metadata,
                progress=progress,
                cancel_event=cancel_event,
                timeout_s=timeout_s,
            ),
        )

    async def _execute_pipeline(
        self, pipeline: Pipeline, context: PipelineContext
    ) -> PipelineResult:
        self._logger.info("pipeline_execute", pipeline=pipeline.name)
        result = await pipeline.execute(context)
        self._logger.info(
            "pipeline_result",
            pipeline=pipeline.name,
            status=result.status.value,
            duration_ms=round(result.metrics.total_duration_ms, 2),
        )
        return result
