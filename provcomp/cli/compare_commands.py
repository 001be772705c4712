"""Compare saved runs.

Saved runs are the JSON written by ``optimize --format json`` and
``targets --format json``.
"""

import json
from pathlib import Path

import click
from rich.console import Console

from provcomp.sdk import (
    TargetConfigError,
    compare_optimizer_runs,
    compare_target_runs,
    load_optimizer_result,
    load_optimizer_settings,
    load_target_result,
)

from .optimize_commands import CONFIG_ERRORS, output_format_option, resolve_output_format
from .renderers.compare_renderer import render_optimizer_comparison, render_target_comparison


@click.group()
def compare():
    """Compare saved optimizer or target runs."""
    pass


@compare.command("optimize")
@click.argument("run_a", type=click.Path(exists=True))
@click.argument("run_b", type=click.Path(exists=True))
@click.option("--name-a", help="Label for the first run (default: file name).")
@click.option("--name-b", help="Label for the second run (default: file name).")
@click.option("--settings-a", "settings_a_path", type=click.Path(exists=True),
              help="Profile the first run used; with --settings-b, lists differing settings.")
@click.option("--settings-b", "settings_b_path", type=click.Path(exists=True),
              help="Profile the second run used.")
@output_format_option
def compare_optimize(run_a, run_b, name_a, name_b, settings_a_path, settings_b_path, output_format):
    """Compare two saved optimizer runs.

    \b
    Examples:
      prov-comp compare optimize fy26.json fy27.json
      prov-comp compare optimize a.json b.json --settings-a a.yaml --settings-b b.yaml
    """
    try:
        result_a = load_optimizer_result(run_a)
        result_b = load_optimizer_result(run_b)
        settings_a = load_optimizer_settings(settings_a_path) if settings_a_path else None
        settings_b = load_optimizer_settings(settings_b_path) if settings_b_path else None
    except CONFIG_ERRORS as e:
        raise click.ClickException(str(e))

    comparison = compare_optimizer_runs(
        result_a,
        result_b,
        name_a=name_a or Path(run_a).stem,
        name_b=name_b or Path(run_b).stem,
        settings_a=settings_a,
        settings_b=settings_b,
    )
    data = comparison.model_dump(mode="json")
    if resolve_output_format(output_format) == "json":
        click.echo(json.dumps(data, indent=2))
        return

    render_optimizer_comparison(Console(width=140), data)


@compare.command("targets")
@click.argument("runs", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--name", "names", multiple=True,
              help="Label for each run, in order (repeatable; default: file names).")
@output_format_option
def compare_targets(runs, names, output_format):
    """Compare two to four saved productivity target runs.

    \b
    Examples:
      prov-comp compare targets p40.json p50.json p60.json
      prov-comp compare targets a.json b.json --name Current --name Proposed
    """
    if names and len(names) != len(runs):
        raise click.ClickException(f"Got {len(names)} --name value(s) for {len(runs)} run(s)")
    labels = list(names) or [Path(run).stem for run in runs]
    if len(set(labels)) != len(labels):
        raise click.ClickException("Run labels must be unique; use --name to set them")

    try:
        results = {label: load_target_result(run) for label, run in zip(labels, runs)}
        comparison = compare_target_runs(results)
    except CONFIG_ERRORS + (TargetConfigError,) as e:
        raise click.ClickException(str(e))

    data = comparison.model_dump(mode="json")
    if resolve_output_format(output_format) == "json":
        click.echo(json.dumps(data, indent=2))
        return

    render_target_comparison(Console(width=140), data)
