"""Registry of named, pre-built pipelines.

Pipelines are built eagerly when configurations are loaded, so a broken
configuration is reported at load time rather than mid-recording. Each
load builds a complete new snapshot and swaps it in with a single
assignment; executions already holding a Pipeline keep running on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from voxpipe.exceptions import PipelineNotFoundError, VoxpipeError
from voxpipe.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    import structlog

    from voxpipe.config.loader import PipelineConfigLoader
    from voxpipe.config.pipelines import PipelineConfig
    from voxpipe.pipeline.context import BuildContext
    from voxpipe.pipeline.executor import Pipeline
    from voxpipe.pipeline.factory import StageFactory


@dataclass(frozen=True, slots=True)
class _Snapshot:
    pipelines: dict[str, Pipeline] = field(default_factory=dict)
    configs: dict[str, PipelineConfig] = field(default_factory=dict)
    default_name: str | None = None

    def resolve(self, name: str) -> str | None:
        if name in self.pipelines:
            return name
        wanted = name.casefold()
        for candidate in self.pipelines:
            if candidate.casefold() == wanted:
                return candidate
        return None


class PipelineRegistry:
    """Owns the named Pipelines and the default selection.

    Args:
        factory: Builds pipelines from configurations.
        build_context: Shared dependencies handed to the factory.
        loader: Source of configurations for ``load()`` without arguments.
        logger: Logger handle. Defaults to the "pipeline.registry" logger.
    """

    def __init__(
        self,
        factory: StageFactory,
        build_context: BuildContext,
        *,
        loader: PipelineConfigLoader | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._factory = factory
        self._build_context = build_context
        self._loader = loader
        self._logger = logger if logger is not None else get_logger("pipeline.registry")
        self._snapshot = _Snapshot()

    def load(
        self,
        configs: Iterable[PipelineConfig] | None = None,
        *,
        default_name: str | None = None,
    ) -> list[str]:
        """Build every enabled configuration and replace the current snapshot.

        A configuration that fails to build is logged and skipped. The
        default is, in order of preference: ``default_name``, the previous
        default (if still loaded), the first loaded pipeline.

        Args:
            configs: Configurations to build. Read from the loader if None.
            default_name: Pipeline to select as default.

        Returns:
            Names of the pipelines now available, in load order.
        """
        if configs is None:
            configs = self._loader.load_all() if self._loader is not None else []

        pipelines: dict[str, Pipeline] = {}
        loaded_configs: dict[str, PipelineConfig] = {}
        for config in configs:
            if not config.enabled:
                self._logger.info("pipeline_disabled", pipeline=config.name)
                continue
            if any(existing.casefold() == config.name.casefold() for existing in pipelines):
                self._logger.warning("pipeline_duplicate_skipped", pipeline=config.name)
                continue
            try:
                pipeline = self._factory.build(config, self._build_context)
            except VoxpipeError as e:
                self._logger.warning("pipeline_build_failed", pipeline=config.name, error=str(e))
                continue
            except Exception as e:
                self._logger.error(
                    "pipeline_build_failed", pipeline=config.name, error=str(e), exc_info=True
                )
                continue
            pipelines[config.name] = pipeline
            loaded_configs[config.name] = config

        candidate = _Snapshot(pipelines=pipelines, configs=loaded_configs)
        chosen: str | None = None
        if default_name is not None:
            chosen = candidate.resolve(default_name)
            if chosen is None:
                self._logger.warning("default_pipeline_not_loaded", pipeline=default_name)
        if chosen is None and self._snapshot.default_name is not None:
            chosen = candidate.resolve(self._snapshot.default_name)
        if chosen is None and pipelines:
            chosen = next(iter(pipelines))

        self._snapshot = _Snapshot(
            pipelines=pipelines, configs=loaded_configs, default_name=chosen
        )
        self._logger.info("pipelines_loaded", pipelines=list(pipelines), default=chosen)
        return list(pipelines)

    def reload(self, configs: Iterable[PipelineConfig] | None = None) -> list[str]:
        """Rebuild from ``configs`` (or the loader), keeping the default if possible."""
        return self.load(configs)

    @property
    def pipeline_names(self) -> list[str]:
        return list(self._snapshot.pipelines)

    @property
    def default_name(self) -> str | None:
        return self._snapshot.default_name

    def has(self, name: str) -> bool:
        return self._snapshot.resolve(name) is not None

    def get(self, name: str) -> Pipeline:
        """Return the pipeline named ``name`` (case-insensitive).

        Raises:
            PipelineNotFoundError: No such pipeline is loaded.
        """
        snapshot = self._snapshot
        resolved = snapshot.resolve(name)
        if resolved is None:
            raise PipelineNotFoundError(name)
        return snapshot.pipelines[resolved]

    def get_config(self, name: str) -> PipelineConfig:
        snapshot = self._snapshot
        resolved = snapshot.resolve(name)
        if resolved is None:
            raise PipelineNotFoundError(name)
        return snapshot.configs[resolved]

    def get_default(self) -> Pipeline | None:
        snapshot = self._snapshot
        if snapshot.default_name is None:
            return None
        return snapshot.pipelines[snapshot.default_name]

    def set_default(self, name: str) -> None:
        """Select the default pipeline.

        Raises:
            PipelineNotFoundError: No such pipeline is loaded.
        """
        snapshot = self._snapshot
        resolved = snapshot.resolve(name)
        if resolved is None:
            raise PipelineNotFoundError(name)
        self._snapshot = _Snapshot(
            pipelines=snapshot.pipelines, configs=snapshot.configs, default_name=resolved
        )
        self._logger.info("default_pipeline_set", pipeline=resolved)
