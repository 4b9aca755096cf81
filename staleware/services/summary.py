from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from staleware.models.enums import Severity
from staleware.models.recommendation import Recommendation
from staleware.models.usage import TrackedItem, UsageEstimate
from staleware.services.formatting import format_bytes, format_days_ago
from staleware.services.recommendations import days_since, reclaimable_bytes

_SEVERITY_STYLE: dict[Severity, str] = {
    Severity.SAFE: "green",
    Severity.REVIEW: "yellow",
    Severity.WARNING: "red",
}


def _totals_panel(recommendations: list[Recommendation]) -> Panel:
    counts = {sev: 0 for sev in Severity}
    for rec in recommendations:
        counts[rec.severity] += 1
    lines = [f"{sev.label}: [bold]{counts[sev]}[/bold]" for sev in sorted(Severity, key=lambda s: s.rank)]
    lines.append(f"Reclaimable: [bold]{format_bytes(reclaimable_bytes(recommendations))}[/bold]")
    return Panel("\n".join(lines), title="Cleanup Summary", border_style="blue")


def recommendations_table(recommendations: list[Recommendation], top_n: int | None = None) -> Table:
    table = Table(title="Cleanup Recommendations", header_style="bold yellow")
    table.add_column("Item")
    table.add_column("Severity", justify="center")
    table.add_column("Reason")
    table.add_column("Size", justify="right")
    shown = recommendations if top_n is None else recommendations[:top_n]
    for rec in shown:
        style = _SEVERITY_STYLE[rec.severity]
        table.add_row(
            escape(rec.item_name),
            f"[{style}]{rec.severity.label}[/{style}]",
            escape(rec.reason),
            format_bytes(rec.recoverable_size),
        )
    return table


def usage_table(
    items: Sequence[TrackedItem],
    estimates: Sequence[UsageEstimate],
    now: datetime,
) -> Table:
    """One row per item: when it was last used, how often, and from which evidence."""
    table = Table(title="Usage", header_style="bold cyan")
    table.add_column("Item")
    table.add_column("Last Used")
    table.add_column("Uses", justify="right")
    table.add_column("Evidence")
    for item, estimate in zip(items, estimates, strict=True):
        if estimate.last_used is None:
            last_used = "[dim]unknown[/dim]"
        else:
            last_used = format_days_ago(days_since(estimate.last_used, now))
        evidence = ", ".join(kind.label for kind in estimate.sources) or "[dim]none[/dim]"
        table.add_row(escape(item.name), last_used, str(estimate.usage_count), evidence)
    return table


def render_recommendations(
    console: Console,
    recommendations: list[Recommendation],
    top_n: int | None = None,
) -> None:
    console.print(_totals_panel(recommendations))
    if not recommendations:
        console.print("Nothing to clean up.")
        return
    console.print(recommendations_table(recommendations, top_n))
