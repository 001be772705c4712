"""Specialty matching CLI command."""

import json

import click
from rich import box
from rich.console import Console
from rich.table import Table

from provcomp.sdk import match_market_row, suggest_specialty_mappings

from .optimize_commands import load_inputs, output_format_option, resolve_output_format

STATUS_STYLES = {"Exact": "green", "Normalized": "cyan", "Synonym": "blue", "Missing": "red"}


@click.command("match")
@click.option("--providers", "-p", "providers_path", type=click.Path(exists=True), required=True,
              help="Provider file (JSON or YAML).")
@click.option("--market", "-m", "market_path", type=click.Path(exists=True), required=True,
              help="Market benchmark file (JSON or YAML).")
@click.option("--settings", "settings_path", type=click.Path(exists=True),
              help="Profile YAML to use instead of the configured profile.")
@click.option("--synonyms", "synonyms_path", type=click.Path(exists=True),
              help="YAML/JSON specialty synonym map.")
@output_format_option
def match(providers_path, market_path, settings_path, synonyms_path, output_format):
    """Show how provider specialties resolve to market rows.

    Unmatched specialties get a suggested market label when one is close
    enough; add it to the profile's synonyms to use it.

    \b
    Examples:
      prov-comp match -p providers.yaml -m market.yaml
      prov-comp match -p providers.yaml -m market.yaml --synonyms synonyms.yaml
    """
    providers, market, synonyms = load_inputs(providers_path, market_path, synonyms_path, settings_path)

    rows = []
    seen = {}
    for provider in providers:
        if provider.specialty in seen:
            seen[provider.specialty]["providers"] += 1
            continue
        result = match_market_row(provider.specialty, market, synonyms, provider.provider_type)
        entry = {
            "specialty": provider.specialty,
            "status": result.status,
            "market_specialty": result.market_row.specialty if result.found else None,
            "providers": 1,
            "suggestion": None,
        }
        seen[provider.specialty] = entry
        rows.append(entry)

    missing = [r["specialty"] for r in rows if r["status"] == "Missing"]
    suggestions = suggest_specialty_mappings(missing, [m.specialty for m in market])
    for row in rows:
        row["suggestion"] = suggestions.get(row["specialty"])

    if resolve_output_format(output_format) == "json":
        click.echo(json.dumps(rows, indent=2))
        return

    console = Console(width=140)
    table = Table(title="Specialty Matching", box=box.SIMPLE_HEAVY)
    table.add_column("Provider Specialty", style="bold")
    table.add_column("Providers", justify="right")
    table.add_column("Status")
    table.add_column("Market Specialty")
    table.add_column("Suggestion", style="dim")
    for row in rows:
        style = STATUS_STYLES.get(row["status"], "white")
        table.add_row(
            row["specialty"],
            str(row["providers"]),
            f"[{style}]{row['status']}[/]",
            row["market_specialty"] or "-",
            row["suggestion"] or "",
        )
    console.print(table)
    if missing:
        console.print(f"[yellow]{len(missing)} specialt{'y' if len(missing) == 1 else 'ies'} "
                      f"without a market row.[/yellow]")
