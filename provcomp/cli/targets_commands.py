"""Productivity target CLI command."""

import json

import click
from rich.console import Console

from provcomp.sdk import TargetConfigError, load_target_settings, run_productivity_targets

from .optimize_commands import CONFIG_ERRORS, load_inputs, output_format_option, resolve_output_format
from .renderers.targets_renderer import render_targets


@click.command("targets")
@click.option("--providers", "-p", "providers_path", type=click.Path(exists=True), required=True,
              help="Provider file (JSON or YAML).")
@click.option("--market", "-m", "market_path", type=click.Path(exists=True), required=True,
              help="Market benchmark file (JSON or YAML).")
@click.option("--settings", "settings_path", type=click.Path(exists=True),
              help="Profile YAML to use instead of the configured profile.")
@click.option("--synonyms", "synonyms_path", type=click.Path(exists=True),
              help="YAML/JSON specialty synonym map.")
@click.option("--detail", is_flag=True, help="Show provider-level rows.")
@output_format_option
def targets(providers_path, market_path, settings_path, synonyms_path, detail, output_format):
    """Compute specialty wRVU targets and each provider's percent to target.

    \b
    Examples:
      prov-comp targets -p providers.yaml -m market.yaml
      prov-comp targets -p providers.yaml -m market.yaml --detail --format json
    """
    providers, market, synonyms = load_inputs(providers_path, market_path, synonyms_path, settings_path)
    try:
        settings = load_target_settings(settings_path)
        result = run_productivity_targets(providers, market, settings, synonym_map=synonyms)
    except CONFIG_ERRORS + (TargetConfigError,) as e:
        raise click.ClickException(str(e))

    data = result.model_dump(mode="json")
    if resolve_output_format(output_format) == "json":
        click.echo(json.dumps(data, indent=2))
        return

    render_targets(Console(width=140), data, detail=detail)
