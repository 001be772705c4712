"""Optimizer CLI commands.

- optimize: recommend a conversion factor per specialty
- sweep: tabulate outcomes at fixed CF percentiles
- imputed: effective $/wRVU against market by specialty
"""

import json
import logging

import click
from rich.console import Console

from provcomp.sdk import (
    ConfigNotFoundError,
    ConfigValidationError,
    DatasetError,
    OptimizerConfigError,
    ProfileNotFoundError,
    SweepConfigError,
    compute_imputed_vs_market,
    get_setting,
    load_market,
    load_optimizer_settings,
    load_providers,
    load_synonym_map,
    run_optimizer,
    run_sweep,
)

from .renderers.optimizer_renderer import render_imputed, render_optimizer_run, render_sweep

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("table", "json")

CONFIG_ERRORS = (ConfigNotFoundError, ConfigValidationError, ProfileNotFoundError, DatasetError)


def load_inputs(providers_path, market_path, synonyms_path, settings_path):
    """Load providers, market rows and the synonym map, as ClickExceptions on failure."""
    try:
        providers = load_providers(providers_path)
        market = load_market(market_path)
        synonyms = load_synonym_map(settings_path, synonyms_file=synonyms_path)
    except CONFIG_ERRORS as e:
        raise click.ClickException(str(e))
    logger.info(f"Loaded {len(providers)} providers and {len(market)} market rows")
    return providers, market, synonyms


def _log_progress(progress):
    logger.info(
        f"[{progress.specialty_index + 1}/{progress.total_specialties}] {progress.specialty_name}"
    )


def input_options(func):
    """Shared --providers/--market/--settings/--synonyms/--specialty options."""
    func = click.option("--specialty", help="Only analyze this specialty (market label).")(func)
    func = click.option("--synonyms", "synonyms_path", type=click.Path(exists=True),
                        help="YAML/JSON specialty synonym map.")(func)
    func = click.option("--settings", "settings_path", type=click.Path(exists=True),
                        help="Profile YAML to use instead of the configured profile.")(func)
    func = click.option("--market", "-m", "market_path", type=click.Path(exists=True), required=True,
                        help="Market benchmark file (JSON or YAML).")(func)
    func = click.option("--providers", "-p", "providers_path", type=click.Path(exists=True), required=True,
                        help="Provider file (JSON or YAML).")(func)
    return func


def output_format_option(func):
    """--format table|json; unset falls back to settings.json default_output_format."""
    return click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMATS), default=None,
                        help="Output format (default: settings default_output_format, else table)")(func)


def resolve_output_format(output_format):
    """Explicit --format, else the configured default, else table."""
    if output_format:
        return output_format
    configured = str(get_setting("default_output_format", "table") or "table").lower()
    if configured not in OUTPUT_FORMATS:
        logger.warning(f"Ignoring unknown default_output_format '{configured}'")
        return "table"
    return configured


@click.command("optimize")
@input_options
@click.option("--detail", is_flag=True, help="Show explanations and provider-level rows.")
@output_format_option
def optimize(providers_path, market_path, settings_path, synonyms_path, specialty, detail, output_format):
    """Recommend a conversion factor for each specialty.

    \b
    Examples:
      prov-comp optimize -p providers.yaml -m market.yaml
      prov-comp optimize -p providers.yaml -m market.yaml --specialty Cardiology --detail
      prov-comp optimize -p providers.yaml -m market.yaml --format json
    """
    providers, market, synonyms = load_inputs(providers_path, market_path, synonyms_path, settings_path)
    try:
        settings = load_optimizer_settings(settings_path)
        result = run_optimizer(
            providers,
            market,
            settings,
            synonym_map=synonyms,
            specialty_filter=specialty,
            on_progress=_log_progress,
        )
    except CONFIG_ERRORS + (OptimizerConfigError,) as e:
        raise click.ClickException(str(e))

    data = result.model_dump(mode="json")
    if resolve_output_format(output_format) == "json":
        click.echo(json.dumps(data, indent=2))
        return

    console = Console(width=140)
    if not result.by_specialty:
        console.print("[yellow]No specialties to analyze.[/yellow]")
        return
    render_optimizer_run(console, data, detail=detail)


@click.command("sweep")
@input_options
@click.option("--percentile", "-P", "percentiles", type=float, multiple=True,
              help="CF percentile to evaluate (repeatable; default 25, 50, 75, 90).")
@output_format_option
def sweep(providers_path, market_path, settings_path, synonyms_path, specialty, percentiles, output_format):
    """Show pay alignment and spend at fixed market CF percentiles.

    \b
    Examples:
      prov-comp sweep -p providers.yaml -m market.yaml
      prov-comp sweep -p providers.yaml -m market.yaml -P 30 -P 40 -P 50
    """
    providers, market, synonyms = load_inputs(providers_path, market_path, synonyms_path, settings_path)
    percentiles = list(percentiles) or [25.0, 50.0, 75.0, 90.0]
    try:
        settings = load_optimizer_settings(settings_path)
        result = run_sweep(
            providers,
            market,
            settings,
            percentiles,
            synonym_map=synonyms,
            specialty_filter=specialty,
            on_progress=_log_progress,
        )
    except CONFIG_ERRORS + (OptimizerConfigError, SweepConfigError) as e:
        raise click.ClickException(str(e))

    data = result.model_dump(mode="json")
    if resolve_output_format(output_format) == "json":
        click.echo(json.dumps(data, indent=2))
        return

    render_sweep(Console(width=140), data)


@click.command("imputed")
@input_options
@output_format_option
def imputed(providers_path, market_path, settings_path, synonyms_path, specialty, output_format):
    """Compare each specialty's effective $/wRVU with market TCC/wRVU ratios.

    \b
    Examples:
      prov-comp imputed -p providers.yaml -m market.yaml
      prov-comp imputed -p providers.yaml -m market.yaml --specialty Cardiology --format json
    """
    providers, market, synonyms = load_inputs(providers_path, market_path, synonyms_path, settings_path)
    try:
        settings = load_optimizer_settings(settings_path)
        result = compute_imputed_vs_market(
            providers, market, settings, synonym_map=synonyms, specialty_filter=specialty
        )
    except CONFIG_ERRORS + (OptimizerConfigError,) as e:
        raise click.ClickException(str(e))

    data = result.model_dump(mode="json")
    if resolve_output_format(output_format) == "json":
        click.echo(json.dumps(data, indent=2))
        return

    console = Console(width=140)
    if not result.rows:
        console.print("[yellow]No specialties with usable $/wRVU.[/yellow]")
        return
    render_imputed(console, data)
