"""Shared fixtures for all tests."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

# Ensure repo root is on sys.path so tests can import the `voxpipe` package
# when running pytest from the repository root without an editable install.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from tests.helpers import make_silence, make_tone, make_wav  # noqa: E402
from voxpipe.config.settings import VoxpipeSettings, get_settings  # noqa: E402
from voxpipe.logging import get_logger  # noqa: E402
from voxpipe.pipeline.context import BuildContext  # noqa: E402

_ISOLATED_ENV_VARS = (
    "VOXPIPE_API_KEY",
    "OPENAI_API_KEY",
    "VOXPIPE_API_BASE_URL",
    "VOXPIPE_LOCAL_MODEL_PATH",
    "VOXPIPE_DEFAULT_PIPELINE",
    "VOXPIPE_BENCHMARK_MAX_CONCURRENCY",
    "VOXPIPE_BENCHMARK_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[Path]:
    """Keep tests away from the real environment, ``.env`` and ``~/.voxpipe``.

    Yields the pipeline store directory used for this test.
    """
    for var in _ISOLATED_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    store = tmp_path / "pipelines"
    monkeypatch.setenv("VOXPIPE_PIPELINES_DIR", str(store))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield store
    get_settings.cache_clear()


@pytest.fixture
def pipeline_store(isolated_settings: Path) -> Path:
    return isolated_settings


@pytest.fixture
def tone_wav() -> bytes:
    """1 second of PCM 16-bit, 16kHz, mono audio (440Hz sine tone)."""
    return make_wav(make_tone(1.0))


@pytest.fixture
def silent_wav() -> bytes:
    """1 second of digital silence."""
    return make_wav(make_silence(1.0))


@pytest.fixture
def speech_with_silence_wav() -> bytes:
    """0.5s silence, 1s tone, 0.5s silence."""
    return make_wav(np.concatenate([make_silence(0.5), make_tone(1.0), make_silence(0.5)]))


@pytest.fixture
def build_context() -> BuildContext:
    """BuildContext with an API key and no local model."""
    return BuildContext(
        settings=VoxpipeSettings(),
        logger=get_logger("tests"),
        api_key="sk-test",
    )


@pytest.fixture
def keyless_build_context() -> BuildContext:
    return BuildContext(settings=VoxpipeSettings(), logger=get_logger("tests"))
