"""Rich renderer for productivity target results."""

from rich import box
from rich.console import Console
from rich.table import Table

from provcomp.sdk.targets import BAND_LABELS


def render_targets(console: Console, data: dict, detail: bool = False) -> None:
    """Render productivity targets.

    Args:
        console: Rich Console instance
        data: SDK output from run_productivity_targets(...).model_dump(mode="json")
        detail: Also render per-provider rows
    """
    table = Table(title="Productivity Targets by Specialty", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Specialty", style="bold")
    table.add_column("Approach")
    table.add_column("Target (1.0)", justify="right")
    table.add_column("n", justify="right")
    table.add_column("Mean %", justify="right")
    table.add_column("Median %", justify="right")
    for band, label in BAND_LABELS.items():
        table.add_column(label, justify="right")
    table.add_column("Aligned")
    table.add_column("Planning $", justify="right")

    for spec in data.get("by_specialty", []):
        summary = spec.get("summary", {})
        target = spec.get("group_target_wrvu")
        aligned = summary.get("aligned")
        aligned_text = "-" if aligned is None else ("[green]yes[/green]" if aligned else "[red]no[/red]")
        counts = summary.get("band_counts", {})
        table.add_row(
            spec.get("specialty", ""),
            spec.get("target_approach", ""),
            "-" if target is None else f"{target:,.0f}",
            str(summary.get("included_count", 0)),
            f"{summary.get('mean_percent_to_target', 0):.0f}%",
            f"{summary.get('median_percent_to_target', 0):.0f}%",
            *[str(counts.get(band, 0)) for band in BAND_LABELS],
            aligned_text,
            f"${spec.get('total_planning_incentive', 0):,.0f}",
        )
    console.print(table)
    console.print(f"Total planning incentive: [bold]${data.get('total_planning_incentive', 0):,.0f}[/bold]")

    for spec in data.get("by_specialty", []):
        for warning in spec.get("warnings", []):
            console.print(f"[yellow]{spec.get('specialty', '')}: {warning}[/yellow]")

    if detail:
        for spec in data.get("by_specialty", []):
            _render_providers(console, spec)


def _render_providers(console: Console, spec: dict) -> None:
    table = Table(title=spec.get("specialty", ""), box=box.MINIMAL)
    table.add_column("Provider")
    table.add_column("cFTE", justify="right")
    table.add_column("Actual", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("% to Target", justify="right")
    table.add_column("Status")
    for row in spec.get("providers", []):
        target = row.get("ramped_target_wrvu")
        percent = row.get("percent_to_target")
        table.add_row(
            row.get("provider_name") or row.get("provider_id", ""),
            f"{row.get('clinical_fte', 0):.2f}",
            f"{row.get('actual_wrvus', 0):,.0f}",
            "-" if target is None else f"{target:,.0f}",
            "-" if percent is None else f"{percent:.0f}%",
            row.get("status") or "excluded",
        )
    console.print(table)
