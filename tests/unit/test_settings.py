"""Tests for voxpipe.config.settings: centralized pydantic-settings configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from voxpipe.config.settings import (
    AudioSettings,
    BenchmarkSettings,
    CloudSettings,
    LocalModelSettings,
    PipelineStoreSettings,
    VoxpipeSettings,
    get_settings,
)


class TestCloudSettings:
    def test_defaults(self) -> None:
        s = CloudSettings()
        assert s.api_key is None
        assert s.has_api_key is False
        assert s.base_url == "https://api.openai.com/v1"
        assert s.transcription_model == "whisper-1"
        assert s.cleaning_model == "gpt-4o-mini"
        assert s.max_retries == 2

    def test_voxpipe_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXPIPE_API_KEY", "sk-voxpipe")
        assert CloudSettings().api_key == "sk-voxpipe"

    def test_openai_api_key_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        assert CloudSettings().has_api_key is True

    def test_blank_key_is_not_a_key(self) -> None:
        assert CloudSettings(api_key="   ").has_api_key is False

    def test_invalid_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXPIPE_HTTP_TIMEOUT_S", "0")
        with pytest.raises(ValidationError):
            CloudSettings()


class TestLocalModelSettings:
    def test_defaults(self) -> None:
        s = LocalModelSettings()
        assert s.has_model is False
        assert s.device == "auto"
        assert s.beam_size == 5

    def test_model_path_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXPIPE_LOCAL_MODEL_PATH", "/models/small")
        assert LocalModelSettings().has_model is True


class TestPipelineStoreSettings:
    def test_config_path_is_expanded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXPIPE_PIPELINES_DIR", "~/voxpipe-test")
        assert PipelineStoreSettings().config_path == Path.home() / "voxpipe-test"

    def test_default_pipeline(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXPIPE_DEFAULT_PIPELINE", "LocalPrivacy")
        assert PipelineStoreSettings().default_pipeline == "LocalPrivacy"


class TestAudioSettings:
    def test_defaults(self) -> None:
        s = AudioSettings()
        assert s.max_file_size_mb == 25
        assert s.max_file_size_bytes == 25 * 1024 * 1024
        assert s.silence_threshold_dbfs == -60.0
        assert s.min_duration_s == 0.1

    def test_threshold_must_be_dbfs(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXPIPE_SILENCE_THRESHOLD_DBFS", "3")
        with pytest.raises(ValidationError):
            AudioSettings()


class TestBenchmarkSettings:
    def test_defaults(self) -> None:
        s = BenchmarkSettings()
        assert s.max_concurrency == 4
        assert s.timeout_s is None
        assert s.accuracy_weight == 0.8
        assert s.speed_weight == pytest.approx(0.2)

    def test_zero_accuracy_weight_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXPIPE_BENCHMARK_ACCURACY_WEIGHT", "0")
        with pytest.raises(ValidationError, match="accuracy_weight"):
            BenchmarkSettings()

    def test_concurrency_bounds(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXPIPE_BENCHMARK_MAX_CONCURRENCY", "0")
        with pytest.raises(ValidationError):
            BenchmarkSettings()


class TestVoxpipeSettings:
    def test_groups_present(self) -> None:
        s = VoxpipeSettings()
        assert isinstance(s.cloud, CloudSettings)
        assert isinstance(s.store, PipelineStoreSettings)
        assert isinstance(s.benchmark, BenchmarkSettings)

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        before = get_settings()
        monkeypatch.setenv("VOXPIPE_API_KEY", "sk-new")
        get_settings.cache_clear()

        after = get_settings()

        assert after is not before
        assert after.cloud.api_key == "sk-new"
