"""`voxpipe pipelines` commands: list, seed and show pipeline configurations."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from voxpipe.cli.main import cli

if TYPE_CHECKING:
    from voxpipe.config.loader import PipelineConfigLoader


def _loader() -> PipelineConfigLoader:
    from voxpipe.config.loader import PipelineConfigLoader
    from voxpipe.config.settings import get_settings

    return PipelineConfigLoader(get_settings().store.config_path)


@cli.group()
def pipelines() -> None:
    """Manages pipeline configurations."""


@pipelines.command("list")
def list_pipelines() -> None:
    """Lists stored pipeline configurations."""
    from voxpipe.config.settings import get_settings

    loader = _loader()
    configs = loader.load_all()
    if not configs:
        click.echo(f"No pipelines configured in {loader.config_dir}.")
        click.echo("Run 'voxpipe pipelines init' to create the defaults.")
        return

    default = get_settings().store.default_pipeline
    name_w = max(max(len(c.name) for c in configs), 4)
    click.echo(f"{'NAME':<{name_w}}  {'ENABLED':<7}  STAGES")
    for config in configs:
        marker = " *" if default and config.name.casefold() == default.casefold() else ""
        stages = " -> ".join(stage.name or stage.stage_type for stage in config.enabled_stages)
        enabled = "yes" if config.enabled else "no"
        click.echo(f"{config.name:<{name_w}}  {enabled:<7}  {stages}{marker}")


@pipelines.command()
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Overwrite existing default configurations.",
)
def init(force: bool) -> None:
    """Creates the default pipelines for the configured credentials."""
    from voxpipe.config.loader import default_pipeline_configs
    from voxpipe.pipeline.context import BuildContext

    loader = _loader()
    build_context = BuildContext.from_settings()
    defaults = default_pipeline_configs(
        has_api_key=build_context.has_api_key,
        has_local_model=build_context.has_local_model,
    )
    if not defaults:
        click.echo(
            "Error: no API key (VOXPIPE_API_KEY) or local model path "
            "(VOXPIPE_LOCAL_MODEL_PATH) configured.",
            err=True,
        )
        sys.exit(1)

    for config in defaults:
        path = loader.path_for(config.name)
        if path.exists() and not force:
            click.echo(f"Skipped {config.name}: {path} already exists (use --force).")
            continue
        loader.save(config)
        click.echo(f"Created {config.name}: {path}")


@pipelines.command()
@click.argument("name")
def show(name: str) -> None:
    """Prints a pipeline configuration as YAML."""
    loader = _loader()
    config = loader.load_by_name(name)
    if config is None:
        click.echo(f"Error: pipeline '{name}' not found in {loader.config_dir}.", err=True)
        sys.exit(1)
    click.echo(config.to_yaml_string(), nl=False)
