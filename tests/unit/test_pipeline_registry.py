"""Tests for voxpipe.pipeline.registry: snapshot loading and default selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import ScriptedStage, set_raw_text
from voxpipe.config.loader import PipelineConfigLoader
from voxpipe.config.pipelines import PipelineConfig, StageConfig
from voxpipe.exceptions import PipelineNotFoundError
from voxpipe.pipeline.context import BuildContext, PipelineContext
from voxpipe.pipeline.factory import StageFactory
from voxpipe.pipeline.registry import PipelineRegistry


def _factory() -> StageFactory:
    factory = StageFactory()
    factory.register(
        "Echo",
        lambda _ctx, settings, options: ScriptedStage(
            options.name or "Echo",
            stage_type="Echo",
            on_execute=set_raw_text(settings.get_str("Text") or ""),
        ),
    )
    return factory


def _config(name: str, *, text: str = "hi", enabled: bool = True) -> PipelineConfig:
    return PipelineConfig(
        name=name,
        enabled=enabled,
        stages=[StageConfig(type="Echo", settings={"Text": text})],
    )


def _broken(name: str) -> PipelineConfig:
    return PipelineConfig(name=name, stages=[StageConfig(type="DoesNotExist")])


@pytest.fixture
def registry(build_context: BuildContext) -> PipelineRegistry:
    return PipelineRegistry(_factory(), build_context)


class TestLoad:
    def test_loads_in_order(self, registry: PipelineRegistry) -> None:
        names = registry.load([_config("A"), _config("B")])

        assert names == ["A", "B"]
        assert registry.pipeline_names == ["A", "B"]

    def test_skips_broken_configuration(self, registry: PipelineRegistry) -> None:
        names = registry.load([_broken("Bad"), _config("Good")])

        assert names == ["Good"]
        assert not registry.has("Bad")

    def test_skips_disabled_configuration(self, registry: PipelineRegistry) -> None:
        registry.load([_config("Off", enabled=False), _config("On")])

        assert registry.pipeline_names == ["On"]

    def test_skips_case_insensitive_duplicate(self, registry: PipelineRegistry) -> None:
        registry.load([_config("Fast", text="first"), _config("FAST", text="second")])

        assert registry.pipeline_names == ["Fast"]
        assert registry.get_config("fast").stages[0].settings["Text"] == "first"

    def test_load_from_loader(self, build_context: BuildContext, pipeline_store: Path) -> None:
        loader = PipelineConfigLoader(pipeline_store)
        loader.save(_config("Stored"))
        registry = PipelineRegistry(_factory(), build_context, loader=loader)

        assert registry.load() == ["Stored"]

    def test_load_without_loader_is_empty(self, registry: PipelineRegistry) -> None:
        assert registry.load() == []
        assert registry.default_name is None
        assert registry.get_default() is None

    def test_all_broken_leaves_empty_registry(self, registry: PipelineRegistry) -> None:
        registry.load([_broken("X"), _broken("Y")])

        assert registry.pipeline_names == []
        assert registry.get_default() is None


class TestDefaultSelection:
    def test_first_loaded_is_default(self, registry: PipelineRegistry) -> None:
        registry.load([_config("A"), _config("B")])

        assert registry.default_name == "A"

    def test_requested_default(self, registry: PipelineRegistry) -> None:
        registry.load([_config("A"), _config("B")], default_name="b")

        assert registry.default_name == "B"

    def test_requested_default_not_loaded_falls_back(self, registry: PipelineRegistry) -> None:
        registry.load([_config("A"), _config("B")], default_name="Missing")

        assert registry.default_name == "A"

    def test_broken_default_falls_back(self, registry: PipelineRegistry) -> None:
        registry.load([_broken("Primary"), _config("Backup")], default_name="Primary")

        assert registry.default_name == "Backup"

    def test_reload_keeps_previous_default(self, registry: PipelineRegistry) -> None:
        registry.load([_config("A"), _config("B")])
        registry.set_default("B")

        registry.reload([_config("A"), _config("B"), _config("C")])

        assert registry.default_name == "B"

    def test_reload_without_previous_default_picks_first(
        self, registry: PipelineRegistry
    ) -> None:
        registry.load([_config("A"), _config("B")])
        registry.set_default("B")

        registry.reload([_config("C"), _config("A")])

        assert registry.default_name == "C"

    def test_set_default_unknown(self, registry: PipelineRegistry) -> None:
        registry.load([_config("A")])

        with pytest.raises(PipelineNotFoundError, match="Pipeline 'Nope' not found"):
            registry.set_default("Nope")
        assert registry.default_name == "A"


class TestLookup:
    def test_get_is_case_insensitive(self, registry: PipelineRegistry) -> None:
        registry.load([_config("FastCloud")])

        assert registry.get("fastcloud").name == "FastCloud"
        assert registry.has("FASTCLOUD")

    def test_get_unknown(self, registry: PipelineRegistry) -> None:
        registry.load([_config("A")])

        with pytest.raises(PipelineNotFoundError) as exc_info:
            registry.get("Z")
        assert exc_info.value.pipeline_name == "Z"

    def test_get_config_unknown(self, registry: PipelineRegistry) -> None:
        with pytest.raises(PipelineNotFoundError):
            registry.get_config("A")

    async def test_pipeline_survives_reload(self, registry: PipelineRegistry) -> None:
        registry.load([_config("A", text="old")])
        held = registry.get("A")

        registry.reload([_config("A", text="new")])
        result = await held.execute(PipelineContext.for_audio(b"x"))

        assert result.text == "old"
        assert registry.get("A") is not held
