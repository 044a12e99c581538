"""Main CLI command group for voxpipe."""

from __future__ import annotations

import click

import voxpipe
from voxpipe.logging import configure_logging


@click.group()
@click.version_option(version=voxpipe.__version__, prog_name="voxpipe")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default: VOXPIPE_LOG_LEVEL or INFO).",
)
@click.option(
    "--log-format",
    default=None,
    type=click.Choice(["console", "json"]),
    help="Log format (default: VOXPIPE_LOG_FORMAT or console).",
)
def cli(log_level: str | None, log_format: str | None) -> None:
    """voxpipe: voice-to-text pipelines (validate, denoise, trim, transcribe, clean)."""
    if log_level or log_format:
        configure_logging(log_format, log_level, force=True)
