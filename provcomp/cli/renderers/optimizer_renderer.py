"""Rich renderers for optimizer and sweep results.

Transforms SDK JSON output (model_dump(mode="json")) into Rich tables.
"""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table


STATUS_STYLES = {"GREEN": "green", "YELLOW": "yellow", "RED": "red"}
ACTION_STYLES = {
    "INCREASE": "green",
    "DECREASE": "red",
    "HOLD": "cyan",
    "NO_RECOMMENDATION": "dim",
}
POLICY_STYLES = {"ok": "green", "above_policy": "yellow", "above_75": "yellow", "above_90": "red"}


def _money(value) -> str:
    if value is None:
        return "-"
    return f"${value:,.0f}"


def _cf(value) -> str:
    if value is None:
        return "-"
    return f"${value:,.2f}"


def _pct(value) -> str:
    if value is None:
        return "-"
    return f"{value:.1f}"


def render_optimizer_run(console: Console, data: dict, detail: bool = False) -> None:
    """Render an optimizer run.

    Args:
        console: Rich Console instance
        data: SDK output from run_optimizer(...).model_dump(mode="json")
        detail: Also render per-specialty explanations and provider rows
    """
    summary = data.get("summary", {})
    _render_summary(console, summary, data.get("budget"))

    table = Table(title="Recommendations by Specialty", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Specialty", style="bold")
    table.add_column("n", justify="right")
    table.add_column("Current CF", justify="right")
    table.add_column("Rec. CF", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Prod %ile", justify="right")
    table.add_column("Pay %ile", justify="right")
    table.add_column("Gap", justify="right")
    table.add_column("Spend Impact", justify="right")
    table.add_column("Action")
    table.add_column("Status")
    table.add_column("CF Policy")

    for spec in data.get("by_specialty", []):
        modeled = spec.get("modeled_metrics", {})
        action = spec.get("action", "")
        status = spec.get("status", "")
        policy = spec.get("policy_check", "ok")
        if spec.get("effective_rate_flag"):
            policy += " [red]$/wRVU>90[/red]"
        table.add_row(
            spec.get("specialty", ""),
            str(spec.get("included_count", 0)),
            _cf(spec.get("current_cf")),
            _cf(spec.get("recommended_cf")),
            f"{spec.get('cf_change_pct', 0):+.1f}%",
            _pct(modeled.get("productivity_percentile")),
            _pct(modeled.get("pay_percentile")),
            f"{modeled.get('gap', 0):+.1f}",
            _money(spec.get("spend_impact")),
            f"[{ACTION_STYLES.get(action, 'white')}]{action}[/]",
            f"[{STATUS_STYLES.get(status, 'white')}]{status}[/]",
            f"[{POLICY_STYLES.get(spec.get('policy_check', 'ok'), 'white')}]{policy}[/]",
        )
    console.print(table)

    if detail:
        for spec in data.get("by_specialty", []):
            _render_specialty_detail(console, spec)

    excluded = data.get("excluded", [])
    if excluded:
        _render_exclusions(console, summary.get("top_exclusion_reasons", []))


def _render_summary(console: Console, summary: dict, budget) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("key", style="dim")
    table.add_column("value")
    table.add_row("Specialties", str(summary.get("specialties_analyzed", 0)))
    table.add_row(
        "Providers",
        f"{summary.get('providers_included', 0)} included, "
        f"{summary.get('providers_excluded', 0)} excluded",
    )
    table.add_row("Spend impact", _money(summary.get("total_spend_impact")))
    table.add_row("Incentive at rec. CF", _money(summary.get("total_incentive")))
    table.add_row(
        "Governance",
        f"{summary.get('meeting_alignment_count', 0)} aligned, "
        f"{summary.get('cf_above_policy_count', 0)} CF above policy, "
        f"{summary.get('effective_rate_above_90_count', 0)} effective rate above 90th",
    )
    if summary.get("not_analyzable_count"):
        table.add_row("Not analyzable", f"[yellow]{summary['not_analyzable_count']}[/yellow]")
    if summary.get("infeasible_count"):
        table.add_row("Infeasible", f"[yellow]{summary['infeasible_count']}[/yellow]")
    if budget:
        style = {"over": "red", "under": "green", "within": "cyan"}.get(budget["status"], "white")
        table.add_row(
            "Budget",
            f"[{style}]{budget['status']}[/] (cap {_money(budget['cap_dollars'])}, "
            f"delta {budget['delta_dollars']:+,.0f})",
        )
    console.print(Panel(table, title="Run Summary", border_style="dim"))

    messages = summary.get("key_messages", [])
    if messages:
        console.print(Panel(
            "\n".join(f"- {m}" for m in messages),
            title="Key Messages",
            border_style="yellow",
        ))


def _render_specialty_detail(console: Console, spec: dict) -> None:
    explanation = spec.get("explanation", {})
    lines = [f"[bold]{explanation.get('headline', '')}[/bold]"]
    lines.extend(f"  - {w}" for w in explanation.get("why", []))
    for step in explanation.get("what_to_do_next", []):
        lines.append(f"  [cyan]Next:[/cyan] {step}")
    for note in spec.get("notes", []):
        lines.append(f"  [dim]{note}[/dim]")
    status = spec.get("status", "")
    console.print(Panel(
        "\n".join(lines),
        title=spec.get("specialty", ""),
        border_style=STATUS_STYLES.get(status, "dim"),
    ))

    table = Table(box=box.MINIMAL, expand=True)
    table.add_column("Provider")
    table.add_column("cFTE", justify="right")
    table.add_column("wRVU %ile", justify="right")
    table.add_column("Base %ile", justify="right")
    table.add_column("Modeled %ile", justify="right")
    table.add_column("Modeled TCC", justify="right")
    table.add_column("Included")
    for ctx in spec.get("providers", []):
        included = "[green]yes[/green]" if ctx.get("included") else (
            "[red]no[/red] " + ", ".join(ctx.get("exclusion_reasons", []))
        )
        table.add_row(
            ctx.get("provider_name") or ctx.get("provider_id", ""),
            f"{ctx.get('clinical_fte', 0):.2f}",
            _pct(ctx.get("wrvu_percentile")),
            _pct(ctx.get("baseline_tcc_percentile")),
            _pct(ctx.get("modeled_tcc_percentile")),
            _money(ctx.get("modeled_tcc")),
            included,
        )
    console.print(table)


def _render_exclusions(console: Console, reasons: list) -> None:
    table = Table(title="Top Exclusion Reasons", box=box.SIMPLE)
    table.add_column("Reason")
    table.add_column("Count", justify="right")
    for item in reasons:
        table.add_row(item.get("label", item.get("reason", "")), str(item.get("count", 0)))
    console.print(table)


def render_sweep(console: Console, data: dict) -> None:
    """Render a CF percentile sweep.

    Args:
        console: Rich Console instance
        data: SDK output from run_sweep(...).model_dump(mode="json")
    """
    for spec in data.get("by_specialty", []):
        table = Table(
            title=f"{spec.get('specialty', '')} (n={spec.get('included_count', 0)})",
            box=box.SIMPLE_HEAVY,
        )
        table.add_column("CF %ile", justify="right")
        table.add_column("CF", justify="right")
        table.add_column("Pay %ile", justify="right")
        table.add_column("Prod %ile", justify="right")
        table.add_column("Gap", justify="right")
        table.add_column("Incentive", justify="right")
        table.add_column("Spend Impact", justify="right")
        for row in spec.get("rows", []):
            table.add_row(
                f"{row['cf_percentile']:g}",
                _cf(row.get("cf_dollars")),
                _pct(row.get("mean_modeled_pay_percentile")),
                _pct(row.get("mean_productivity_percentile")),
                f"{row.get('gap', 0):+.1f}",
                _money(row.get("total_incentive")),
                _money(row.get("spend_impact")),
            )
        console.print(table)
        for note in spec.get("notes", []):
            console.print(f"  [yellow]{note}[/yellow]")


def render_imputed(console: Console, data: dict) -> None:
    """Render imputed $/wRVU against market TCC/wRVU ratios.

    Args:
        console: Rich Console instance
        data: SDK output from compute_imputed_vs_market(...).model_dump(mode="json")
    """
    table = Table(title="Imputed $/wRVU vs Market", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Specialty", style="bold")
    table.add_column("n", justify="right")
    table.add_column("Median $/wRVU", justify="right")
    table.add_column("Mkt 25", justify="right")
    table.add_column("Mkt 50", justify="right")
    table.add_column("Mkt 75", justify="right")
    table.add_column("Mkt 90", justify="right")
    table.add_column("%ile", justify="right")
    table.add_column("TCC %ile", justify="right")
    table.add_column("wRVU %ile", justify="right")
    table.add_column("Median CF", justify="right")
    table.add_column("Mkt CF 50", justify="right")
    for row in data.get("rows", []):
        position = _pct(row.get("imputed_percentile"))
        if row.get("below_range"):
            position = f"[yellow]<25 ({position})[/yellow]"
        elif row.get("above_range"):
            position = f"[red]>90 ({position})[/red]"
        table.add_row(
            row.get("specialty", ""),
            str(row.get("provider_count", 0)),
            _cf(row.get("median_imputed_per_wrvu")),
            _cf(row.get("market_per_wrvu_25")),
            _cf(row.get("market_per_wrvu_50")),
            _cf(row.get("market_per_wrvu_75")),
            _cf(row.get("market_per_wrvu_90")),
            position,
            _pct(row.get("mean_tcc_percentile")),
            _pct(row.get("mean_wrvu_percentile")),
            _cf(row.get("median_current_cf")),
            _cf(row.get("market_cf_50")),
        )
    console.print(table)
