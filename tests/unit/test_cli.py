"""Tests for the voxpipe CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

import voxpipe
from tests.helpers import fake_stage_factory
from voxpipe.benchmark.engine import BenchmarkEngine
from voxpipe.cli.main import cli
from voxpipe.config.loader import PipelineConfigLoader
from voxpipe.config.pipelines import PipelineConfig, StageConfig
from voxpipe.config.settings import get_settings
from voxpipe.pipeline.context import BuildContext
from voxpipe.pipeline.registry import PipelineRegistry
from voxpipe.pipeline.service import PipelineService

_SERVICE_FROM_SETTINGS = "voxpipe.pipeline.service.PipelineService.from_settings"
_ENGINE_FROM_SETTINGS = "voxpipe.benchmark.engine.BenchmarkEngine.from_settings"


def _service(build_context: BuildContext, transcript: str = "hello world") -> PipelineService:
    registry = PipelineRegistry(fake_stage_factory(transcript), build_context)
    registry.load(
        [
            PipelineConfig(
                name="Test",
                stages=[
                    StageConfig(type="AudioValidation"),
                    StageConfig(type="CloudTranscription"),
                    StageConfig(type="PassThroughCleaning"),
                ],
            )
        ]
    )
    return PipelineService(registry)


@pytest.fixture
def wav_file(tmp_path: Path, tone_wav: bytes) -> Path:
    path = tmp_path / "clip.wav"
    path.write_bytes(tone_wav)
    return path


class TestMain:
    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert voxpipe.__version__ in result.output

    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("run", "pipelines", "benchmark"):
            assert command in result.output


class TestRunCommand:
    def test_prints_transcript(self, build_context: BuildContext, wav_file: Path) -> None:
        with patch(_SERVICE_FROM_SETTINGS, return_value=_service(build_context)):
            result = CliRunner().invoke(cli, ["run", str(wav_file)])

        assert result.exit_code == 0
        assert "hello world" in result.output
        assert "[100%] Complete" in result.output

    def test_json_output(self, build_context: BuildContext, wav_file: Path) -> None:
        with patch(_SERVICE_FROM_SETTINGS, return_value=_service(build_context)):
            result = CliRunner().invoke(cli, ["run", str(wav_file), "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["status"] == "completed"
        assert payload["text"] == "hello world"
        assert payload["word_count"] == 2
        assert [s["type"] for s in payload["metrics"]["stages"]] == [
            "AudioValidation",
            "CloudTranscription",
            "PassThroughCleaning",
        ]

    def test_metrics_summary(self, build_context: BuildContext, wav_file: Path) -> None:
        with patch(_SERVICE_FROM_SETTINGS, return_value=_service(build_context)):
            result = CliRunner().invoke(cli, ["run", str(wav_file), "--metrics"])

        assert result.exit_code == 0
        assert "Pipeline: Test" in result.output
        assert "TotalWordCount" in result.output

    def test_silence_is_soft_stop(
        self, build_context: BuildContext, tmp_path: Path, silent_wav: bytes
    ) -> None:
        path = tmp_path / "silence.wav"
        path.write_bytes(silent_wav)

        with patch(_SERVICE_FROM_SETTINGS, return_value=_service(build_context)):
            result = CliRunner().invoke(cli, ["run", str(path)])

        assert result.exit_code == 0
        assert "No speech detected" in result.output

    def test_failure_exits_1(self, build_context: BuildContext, tmp_path: Path) -> None:
        path = tmp_path / "bad.wav"
        path.write_bytes(b"not audio at all")

        with patch(_SERVICE_FROM_SETTINGS, return_value=_service(build_context)):
            result = CliRunner().invoke(cli, ["run", str(path)])

        assert result.exit_code == 1
        assert "(stage: Audio Validation)" in result.output

    def test_unknown_pipeline(self, build_context: BuildContext, wav_file: Path) -> None:
        with patch(_SERVICE_FROM_SETTINGS, return_value=_service(build_context)):
            result = CliRunner().invoke(cli, ["run", str(wav_file), "--pipeline", "Nope"])

        assert result.exit_code == 1
        assert "Pipeline 'Nope' not found" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["run", str(tmp_path / "missing.wav")])

        assert result.exit_code == 1
        assert "file not found" in result.output

    def test_no_pipelines_configured(self, wav_file: Path) -> None:
        result = CliRunner().invoke(cli, ["run", str(wav_file)])

        assert result.exit_code == 1
        assert "No default pipeline configured" in result.output


class TestPipelinesCommands:
    def test_list_empty(self, pipeline_store: Path) -> None:
        result = CliRunner().invoke(cli, ["pipelines", "list"])

        assert result.exit_code == 0
        assert "No pipelines configured" in result.output
        assert "voxpipe pipelines init" in result.output

    def test_init_without_credentials(self) -> None:
        result = CliRunner().invoke(cli, ["pipelines", "init"])

        assert result.exit_code == 1
        assert "VOXPIPE_API_KEY" in result.output

    def test_init_with_api_key(
        self, monkeypatch: pytest.MonkeyPatch, pipeline_store: Path
    ) -> None:
        monkeypatch.setenv("VOXPIPE_API_KEY", "sk-cli")
        get_settings.cache_clear()

        first = CliRunner().invoke(cli, ["pipelines", "init"])
        second = CliRunner().invoke(cli, ["pipelines", "init"])

        assert first.exit_code == 0
        assert "Created FastCloud" in first.output
        assert "Skipped FastCloud" in second.output
        assert "sk-cli" not in (pipeline_store / "FastCloud.pipeline.yaml").read_text()

    def test_init_with_both_credentials(
        self, monkeypatch: pytest.MonkeyPatch, pipeline_store: Path
    ) -> None:
        monkeypatch.setenv("VOXPIPE_API_KEY", "sk-cli")
        monkeypatch.setenv("VOXPIPE_LOCAL_MODEL_PATH", "/models/base")
        get_settings.cache_clear()

        result = CliRunner().invoke(cli, ["pipelines", "init", "--force"])

        assert result.exit_code == 0
        for name in ("FastCloud", "LocalPrivacy", "Hybrid"):
            assert f"Created {name}" in result.output

    def test_list_marks_default(
        self, monkeypatch: pytest.MonkeyPatch, pipeline_store: Path
    ) -> None:
        loader = PipelineConfigLoader(pipeline_store)
        loader.save(PipelineConfig(name="Alpha", stages=[StageConfig(type="AudioValidation")]))
        loader.save(
            PipelineConfig(
                name="Beta",
                enabled=False,
                stages=[StageConfig(type="AudioValidation", name="Check")],
            )
        )
        monkeypatch.setenv("VOXPIPE_DEFAULT_PIPELINE", "beta")
        get_settings.cache_clear()

        result = CliRunner().invoke(cli, ["pipelines", "list"])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].startswith("NAME")
        assert lines[1].startswith("Alpha") and not lines[1].endswith("*")
        assert lines[2].startswith("Beta") and " no " in lines[2]
        assert lines[2].endswith("Check *")

    def test_show(self, pipeline_store: Path) -> None:
        PipelineConfigLoader(pipeline_store).save(
            PipelineConfig(name="Alpha", stages=[StageConfig(type="NoiseReduction")])
        )

        result = CliRunner().invoke(cli, ["pipelines", "show", "Alpha"])

        assert result.exit_code == 0
        assert "name: Alpha" in result.output
        assert "NoiseReduction" in result.output

    def test_show_unknown(self, pipeline_store: Path) -> None:
        result = CliRunner().invoke(cli, ["pipelines", "show", "Ghost"])

        assert result.exit_code == 1
        assert "pipeline 'Ghost' not found" in result.output


class TestBenchmarkCommand:
    def test_ranks_variants(self, build_context: BuildContext, wav_file: Path) -> None:
        engine = BenchmarkEngine(fake_stage_factory("hello world"), build_context)

        with patch(_ENGINE_FROM_SETTINGS, return_value=engine):
            result = CliRunner().invoke(
                cli, ["benchmark", str(wav_file), "--reference", "hello world"]
            )

        assert result.exit_code == 0
        assert "4 succeeded, 0 failed" in result.output
        assert "Winner:" in result.output
        assert "accuracy 100.0%" in result.output

    def test_reference_file(
        self, build_context: BuildContext, wav_file: Path, tmp_path: Path
    ) -> None:
        reference = tmp_path / "reference.txt"
        reference.write_text("hello world\n", encoding="utf-8")
        engine = BenchmarkEngine(fake_stage_factory("hello world"), build_context)

        with patch(_ENGINE_FROM_SETTINGS, return_value=engine):
            result = CliRunner().invoke(
                cli, ["benchmark", str(wav_file), "--reference-file", str(reference)]
            )

        assert result.exit_code == 0
        assert "Winner:" in result.output

    def test_both_references_rejected(self, wav_file: Path, tmp_path: Path) -> None:
        reference = tmp_path / "reference.txt"
        reference.write_text("hello", encoding="utf-8")

        result = CliRunner().invoke(
            cli,
            ["benchmark", str(wav_file), "--reference", "x", "--reference-file", str(reference)],
        )

        assert result.exit_code == 1
        assert "not both" in result.output

    def test_missing_file_aborts(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["benchmark", str(tmp_path / "missing.wav")])

        assert result.exit_code == 1
        assert "file not found" in result.output

    def test_all_variants_failed(self, keyless_build_context: BuildContext, wav_file: Path) -> None:
        from voxpipe.pipeline.factory import default_stage_factory

        engine = BenchmarkEngine(default_stage_factory(), keyless_build_context)

        with patch(_ENGINE_FROM_SETTINGS, return_value=engine):
            result = CliRunner().invoke(cli, ["benchmark", str(wav_file)])

        assert result.exit_code == 1
        assert "0 succeeded, 4 failed" in result.output
