"""Rich renderers for run comparisons."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from provcomp.sdk.targets import BAND_LABELS

from .optimizer_renderer import _cf, _money, _pct

PRESENCE_LABELS = {"both": "", "a_only": "A only", "b_only": "B only"}


def _delta_pct(value) -> str:
    if value is None:
        return "-"
    return f"{value:+.1f}%"


def render_optimizer_comparison(console: Console, data: dict) -> None:
    """Render two optimizer runs side by side.

    Args:
        console: Rich Console instance
        data: SDK output from compare_optimizer_runs(...).model_dump(mode="json")
    """
    a, b = data.get("name_a", "A"), data.get("name_b", "B")
    rollup = data.get("rollup", {})

    table = Table(title="Roll-up", box=box.SIMPLE_HEAVY)
    table.add_column("Metric", style="dim")
    table.add_column(a, justify="right")
    table.add_column(b, justify="right")
    table.add_row(
        "Providers included",
        str(rollup.get("providers_included_a", 0)),
        str(rollup.get("providers_included_b", 0)),
    )
    table.add_row(
        "Providers excluded",
        str(rollup.get("providers_excluded_a", 0)),
        str(rollup.get("providers_excluded_b", 0)),
    )
    table.add_row(
        "Spend impact", _money(rollup.get("spend_impact_a")), _money(rollup.get("spend_impact_b"))
    )
    table.add_row("Incentive", _money(rollup.get("incentive_a")), _money(rollup.get("incentive_b")))
    table.add_row(
        "Mean TCC %ile",
        _pct(rollup.get("mean_tcc_percentile_a")),
        _pct(rollup.get("mean_tcc_percentile_b")),
    )
    table.add_row(
        "Mean wRVU %ile",
        _pct(rollup.get("mean_wrvu_percentile_a")),
        _pct(rollup.get("mean_wrvu_percentile_b")),
    )
    table.add_row(
        "Meeting alignment",
        str(rollup.get("meeting_alignment_a", 0)),
        str(rollup.get("meeting_alignment_b", 0)),
    )
    table.add_row(
        "CF above policy",
        str(rollup.get("cf_above_policy_a", 0)),
        str(rollup.get("cf_above_policy_b", 0)),
    )
    table.add_row(
        "Effective rate >90th",
        str(rollup.get("effective_rate_above_90_a", 0)),
        str(rollup.get("effective_rate_above_90_b", 0)),
    )
    console.print(table)

    diffs = data.get("settings_differences", [])
    if diffs:
        settings_table = Table(title="Settings Differences", box=box.SIMPLE)
        settings_table.add_column("Setting")
        settings_table.add_column(a)
        settings_table.add_column(b)
        for diff in diffs:
            settings_table.add_row(diff["key"], str(diff.get("value_a")), str(diff.get("value_b")))
        console.print(settings_table)

    spec_table = Table(title="By Specialty", box=box.SIMPLE_HEAVY, expand=True)
    spec_table.add_column("Specialty", style="bold")
    spec_table.add_column(f"CF {a}", justify="right")
    spec_table.add_column(f"CF {b}", justify="right")
    spec_table.add_column("CF Change", justify="right")
    spec_table.add_column(f"Spend {a}", justify="right")
    spec_table.add_column(f"Spend {b}", justify="right")
    spec_table.add_column(f"TCC %ile {a}", justify="right")
    spec_table.add_column(f"TCC %ile {b}", justify="right")
    spec_table.add_column("Present", style="dim")
    for row in data.get("by_specialty", []):
        spec_table.add_row(
            row.get("specialty", ""),
            _cf(row.get("recommended_cf_a")),
            _cf(row.get("recommended_cf_b")),
            _delta_pct(row.get("cf_delta_pct")),
            _money(row.get("spend_impact_a")),
            _money(row.get("spend_impact_b")),
            _pct(row.get("tcc_percentile_a")),
            _pct(row.get("tcc_percentile_b")),
            PRESENCE_LABELS.get(row.get("presence"), ""),
        )
    console.print(spec_table)

    narrative = data.get("narrative", [])
    if narrative:
        console.print(Panel("\n".join(f"- {line}" for line in narrative), title="Summary", border_style="cyan"))


def render_target_comparison(console: Console, data: dict) -> None:
    """Render two to four target runs side by side.

    Args:
        console: Rich Console instance
        data: SDK output from compare_target_runs(...).model_dump(mode="json")
    """
    names = data.get("scenarios", [])

    table = Table(title="Roll-up", box=box.SIMPLE_HEAVY)
    table.add_column("Scenario", style="bold")
    table.add_column("Approach")
    table.add_column("Target %ile", justify="right")
    table.add_column("Planning $", justify="right")
    table.add_column("Mean %", justify="right")
    for label in BAND_LABELS.values():
        table.add_column(label, justify="right")
    for rollup in data.get("rollup", []):
        counts = rollup.get("band_counts", {})
        table.add_row(
            rollup.get("name", ""),
            ", ".join(rollup.get("target_approaches", [])) or "-",
            ", ".join(f"{p:g}" for p in rollup.get("target_percentiles", [])) or "-",
            _money(rollup.get("total_planning_incentive")),
            f"{rollup.get('mean_percent_to_target', 0):.0f}%",
            *[str(counts.get(band, 0)) for band in BAND_LABELS],
        )
    console.print(table)

    spec_table = Table(title="By Specialty", box=box.SIMPLE_HEAVY, expand=True)
    spec_table.add_column("Specialty", style="bold")
    for name in names:
        spec_table.add_column(f"Target {name}", justify="right")
        spec_table.add_column(f"Mean % {name}", justify="right")
        spec_table.add_column(f"Planning {name}", justify="right")
    for row in data.get("by_specialty", []):
        cells = []
        for name in names:
            cell = row.get("by_scenario", {}).get(name, {})
            target = cell.get("group_target_wrvu")
            mean_pct = cell.get("mean_percent_to_target")
            cells.extend([
                "-" if target is None else f"{target:,.0f}",
                "-" if mean_pct is None else f"{mean_pct:.0f}%",
                _money(cell.get("planning_incentive")),
            ])
        spec_table.add_row(row.get("specialty", ""), *cells)
    console.print(spec_table)
