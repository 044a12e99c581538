"""`voxpipe benchmark` command: compares stage combinations on one recording."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from voxpipe.cli.main import cli


@cli.command()
@click.argument("audio_file", type=click.Path(path_type=Path))
@click.option("--reference", default=None, help="Reference transcript for accuracy scoring.")
@click.option(
    "--reference-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="File holding the reference transcript.",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Variants executed at once (default: VOXPIPE_BENCHMARK_MAX_CONCURRENCY).",
)
def benchmark(
    audio_file: Path,
    reference: str | None,
    reference_file: Path | None,
    concurrency: int | None,
) -> None:
    """Runs every benchmark variant over AUDIO_FILE and ranks them."""
    from voxpipe._types import BenchmarkState
    from voxpipe.benchmark.engine import BenchmarkEngine

    if reference is not None and reference_file is not None:
        click.echo("Error: use either --reference or --reference-file, not both.", err=True)
        sys.exit(1)
    if reference_file is not None:
        reference = reference_file.read_text(encoding="utf-8")

    engine = BenchmarkEngine.from_settings(max_concurrency=concurrency)
    report = asyncio.run(engine.run_file(audio_file, reference))

    if report.state is BenchmarkState.ABORTED:
        click.echo(f"Error: {report.error}", err=True)
        sys.exit(1)

    click.echo(report.summary())
    if not report.successes:
        sys.exit(1)
