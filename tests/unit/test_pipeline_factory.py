"""Tests for voxpipe.pipeline.factory: stage construction from configuration."""

from __future__ import annotations

import pytest

from tests.helpers import ScriptedStage
from voxpipe._types import StageType
from voxpipe.config.pipelines import PipelineConfig, StageConfig
from voxpipe.config.stage_settings import StageSettings
from voxpipe.exceptions import (
    EmptyPipelineError,
    InvalidStageSettingError,
    StageBuildError,
    UnknownStageTypeError,
)
from voxpipe.pipeline.context import BuildContext
from voxpipe.pipeline.factory import StageFactory, default_stage_factory
from voxpipe.pipeline.stages import Stage, StageOptions
from voxpipe.stages import (
    AudioValidationStage,
    NoiseReductionStage,
    TextCleaningStage,
    TranscriptionStage,
    VoiceActivityTrimStage,
)


class TestRegistration:
    def test_default_factory_registers_builtins(self) -> None:
        factory = default_stage_factory()

        assert factory.registered_types == sorted(t.value for t in StageType)

    def test_duplicate_registration_rejected(self) -> None:
        factory = StageFactory()
        factory.register("Custom", lambda _c, _s, o: ScriptedStage(o.name or "Custom"))

        with pytest.raises(ValueError, match="already registered"):
            factory.register("Custom", lambda _c, _s, o: ScriptedStage("x"))

    def test_custom_stage_type(self, build_context: BuildContext) -> None:
        factory = StageFactory()
        factory.register("Custom", lambda _c, _s, o: ScriptedStage(o.name or "Custom"))

        stage = factory.create_stage(StageConfig(type="Custom"), build_context)

        assert stage.name == "Custom"
        assert factory.is_registered("Custom")


class TestCreateStage:
    def test_unknown_type(self, build_context: BuildContext) -> None:
        with pytest.raises(UnknownStageTypeError) as exc_info:
            default_stage_factory().create_stage(StageConfig(type="Teleport"), build_context)

        err = exc_info.value
        assert err.stage_type == "Teleport"
        assert "AudioValidation" in err.available
        assert str(err).startswith("No factory registered for stage type: Teleport")

    @pytest.mark.parametrize(
        ("stage_type", "expected"),
        [
            ("AudioValidation", AudioValidationStage),
            ("NoiseReduction", NoiseReductionStage),
            ("VoiceActivityTrim", VoiceActivityTrimStage),
            ("CloudTranscription", TranscriptionStage),
            ("LLMTextCleaning", TextCleaningStage),
            ("PassThroughCleaning", TextCleaningStage),
        ],
    )
    def test_builtin_types(
        self, build_context: BuildContext, stage_type: str, expected: type[Stage]
    ) -> None:
        stage = default_stage_factory().create_stage(StageConfig(type=stage_type), build_context)

        assert isinstance(stage, expected)
        assert stage.stage_type == stage_type

    def test_name_override(self, build_context: BuildContext) -> None:
        config = StageConfig(type="AudioValidation", name="Check Input")

        stage = default_stage_factory().create_stage(config, build_context)

        assert stage.name == "Check Input"

    def test_default_name(self, build_context: BuildContext) -> None:
        config = StageConfig(type="NoiseReduction")

        stage = default_stage_factory().create_stage(config, build_context)

        assert stage.name == "Noise Reduction"

    def test_retry_settings(self, build_context: BuildContext) -> None:
        config = StageConfig(
            type="CloudTranscription", settings={"RetryCount": 2, "RetryDelayMs": 250}
        )

        stage = default_stage_factory().create_stage(config, build_context)

        assert stage.retry_count == 2
        assert stage.retry_delay_s == pytest.approx(0.25)

    def test_invalid_setting_type(self, build_context: BuildContext) -> None:
        config = StageConfig(type="VoiceActivityTrim", settings={"MinSpeechDurationMs": "long"})

        with pytest.raises(InvalidStageSettingError):
            default_stage_factory().create_stage(config, build_context)

    def test_cloud_stage_without_api_key(self, keyless_build_context: BuildContext) -> None:
        with pytest.raises(StageBuildError, match="API key not found"):
            default_stage_factory().create_stage(
                StageConfig(type="CloudTranscription"), keyless_build_context
            )

    def test_api_key_from_stage_settings(self, keyless_build_context: BuildContext) -> None:
        config = StageConfig(type="LLMTextCleaning", settings={"ApiKey": "sk-stage"})

        stage = default_stage_factory().create_stage(config, keyless_build_context)

        assert isinstance(stage, TextCleaningStage)

    def test_local_stage_without_model_path(self, build_context: BuildContext) -> None:
        with pytest.raises(StageBuildError, match="model path"):
            default_stage_factory().create_stage(
                StageConfig(type="LocalTranscription"), build_context
            )

    def test_local_stage_with_model_path(self, build_context: BuildContext) -> None:
        config = StageConfig(type="LocalTranscription", settings={"ModelPath": "/models/small"})

        stage = default_stage_factory().create_stage(config, build_context)

        assert stage.stage_type == "LocalTranscription"

    def test_constructor_value_error_becomes_build_error(
        self, build_context: BuildContext
    ) -> None:
        config = StageConfig(type="NoiseReduction", settings={"HopLength": 4096})

        with pytest.raises(StageBuildError):
            default_stage_factory().create_stage(config, build_context)

    @pytest.mark.parametrize(
        "settings",
        [{"FftSize": 511}, {"FftSize": 512, "HopLength": 512}],
    )
    def test_non_invertible_noise_settings_rejected_at_build(
        self, build_context: BuildContext, settings: dict[str, int]
    ) -> None:
        config = StageConfig(type="NoiseReduction", settings=settings)

        with pytest.raises(StageBuildError):
            default_stage_factory().create_stage(config, build_context)

    def test_constructor_receives_typed_settings(self, build_context: BuildContext) -> None:
        received: list[tuple[StageSettings, StageOptions]] = []

        def constructor(
            _ctx: BuildContext, settings: StageSettings, options: StageOptions
        ) -> Stage:
            received.append((settings, options))
            return ScriptedStage("x")

        factory = StageFactory()
        factory.register("Custom", constructor)
        factory.create_stage(StageConfig(type="Custom", settings={"Level": "3"}), build_context)

        settings, options = received[0]
        assert settings.get_int("Level", 0) == 3
        assert options.retry_count == 0


class TestBuild:
    def test_build_skips_disabled_stages(self, build_context: BuildContext) -> None:
        config = PipelineConfig(
            name="P",
            description="desc",
            stages=[
                StageConfig(type="AudioValidation"),
                StageConfig(type="NoiseReduction", enabled=False),
                StageConfig(type="PassThroughCleaning"),
            ],
        )

        pipeline = default_stage_factory().build(config, build_context)

        assert pipeline.name == "P"
        assert pipeline.description == "desc"
        assert [s.stage_type for s in pipeline.stages] == ["AudioValidation", "PassThroughCleaning"]

    def test_no_enabled_stages(self, build_context: BuildContext) -> None:
        config = PipelineConfig(
            name="Empty", stages=[StageConfig(type="AudioValidation", enabled=False)]
        )

        with pytest.raises(EmptyPipelineError, match="Empty"):
            default_stage_factory().build(config, build_context)

    def test_one_bad_stage_fails_the_build(self, build_context: BuildContext) -> None:
        config = PipelineConfig(
            name="P", stages=[StageConfig(type="AudioValidation"), StageConfig(type="Nope")]
        )

        with pytest.raises(UnknownStageTypeError):
            default_stage_factory().build(config, build_context)
