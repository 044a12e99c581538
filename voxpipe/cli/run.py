"""`voxpipe run` command: transcribes a WAV file through a pipeline."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from voxpipe.cli.main import cli

if TYPE_CHECKING:
    from voxpipe._types import ProgressUpdate
    from voxpipe.pipeline.results import PipelineResult


def _echo_progress(update: ProgressUpdate) -> None:
    if update.percent is None:
        click.echo(update.message, err=True)
    else:
        click.echo(f"[{update.percent:>3}%] {update.message}", err=True)


def result_to_dict(result: PipelineResult) -> dict[str, Any]:
    """JSON-serializable view of a PipelineResult."""
    metrics = result.metrics
    return {
        "status": result.status.value,
        "success": result.success,
        "text": result.text,
        "word_count": result.word_count,
        "language": result.language,
        "audio_duration_s": result.audio_duration_s,
        "error": result.error,
        "failed_stage": result.failed_stage,
        "metrics": {
            "pipeline": metrics.pipeline_name,
            "total_duration_ms": round(metrics.total_duration_ms, 2),
            "stages": [
                {
                    "name": stage.stage_name,
                    "type": stage.stage_type,
                    "status": stage.status.value,
                    "duration_ms": round(stage.duration_ms, 2),
                    "metrics": stage.custom_metrics,
                }
                for stage in metrics.stages
            ],
            "global": metrics.global_metrics,
        },
    }


@cli.command()
@click.argument("audio_file", type=click.Path(path_type=Path))
@click.option(
    "--pipeline",
    "pipeline_name",
    default=None,
    help="Pipeline to use (default: the configured default pipeline).",
)
@click.option(
    "--timeout",
    "timeout_s",
    type=click.FloatRange(min=0.0, min_open=True),
    default=None,
    help="Deadline for the whole run, in seconds.",
)
@click.option(
    "--json", "as_json", is_flag=True, default=False, help="Print the full result as JSON."
)
@click.option(
    "--metrics", "show_metrics", is_flag=True, default=False, help="Print the metrics summary."
)
def run(
    audio_file: Path,
    pipeline_name: str | None,
    timeout_s: float | None,
    as_json: bool,
    show_metrics: bool,
) -> None:
    """Transcribes a WAV file through a pipeline."""
    from voxpipe.exceptions import VoxpipeError
    from voxpipe.pipeline.service import PipelineService

    if not audio_file.is_file():
        click.echo(f"Error: file not found: {audio_file}", err=True)
        sys.exit(1)

    try:
        service = PipelineService.from_settings()
    except VoxpipeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    result = asyncio.run(
        service.execute(
            audio_file.read_bytes(),
            metadata={"source": str(audio_file)},
            progress=None if as_json else _echo_progress,
            timeout_s=timeout_s,
            pipeline_name=pipeline_name,
        )
    )

    if as_json:
        click.echo(json.dumps(result_to_dict(result), indent=2, ensure_ascii=False))
    elif result.soft_stopped:
        click.echo("No speech detected; nothing to transcribe.", err=True)
    elif result.success:
        click.echo(result.text)

    if show_metrics and not as_json:
        click.echo(result.metrics.summary(), err=True)

    if not result.success:
        if not as_json:
            stage = f" (stage: {result.failed_stage})" if result.failed_stage else ""
            click.echo(f"Error: {result.error}{stage}", err=True)
        sys.exit(1)
