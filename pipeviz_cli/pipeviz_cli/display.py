"""Rich output formatting for the pipeviz CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

if TYPE_CHECKING:
    from pipeviz_engine.models.analysis import (
        AirflowPlan,
        AnalysisError,
        AttributeLineage,
        BackfillPlan,
        BlastRadiusReport,
        DatasourceLineage,
        EstateStats,
        GraphExport,
        LineageEntry,
        WeightedPathReport,
    )
    from pipeviz_engine.models.estate import EstateConfig
    from pipeviz_engine.telemetry.profiling import OperationTiming


_KIND_COLOURS: dict[str, str] = {
    "pipeline": "cyan",
    "datasource": "magenta",
    "group": "yellow",
}


def _coloured_kind(kind: str) -> str:
    colour = _KIND_COLOURS.get(kind, "white")
    return f"[{colour}]{kind}[/{colour}]"


def _table(title: str) -> Table:
    return Table(title=title, show_lines=False, pad_edge=True, expand=False)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


def display_error(console: Console, error: AnalysisError) -> None:
    console.print(f"[red]{error.message}[/red]")


def display_notice(console: Console, message: str) -> None:
    console.print(f"[yellow]{message}[/yellow]")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def display_validation(console: Console, config: EstateConfig, warnings: list[str]) -> None:
    """Render a summary of a successfully loaded estate document."""
    lines = [
        f"[bold]Pipelines:[/bold]   {len(config.pipelines)}",
        f"[bold]Datasources:[/bold] {len(config.datasources)}",
        f"[bold]Clusters:[/bold]    {len(config.clusters)}",
        f"[bold]Groups:[/bold]      {len(config.groups)}",
    ]
    if config.version:
        lines.append(f"[bold]Version:[/bold]     {config.version}")
    console.print(Panel("\n".join(lines), title="Estate", border_style="green"))

    for message in warnings:
        console.print(f"[yellow]warning:[/yellow] {message}")
    console.print(f"[green]Configuration is valid[/green] ({len(warnings)} warning(s)).")


# ---------------------------------------------------------------------------
# Lineage
# ---------------------------------------------------------------------------


def _add_entries(tree: Tree, label: str, colour: str, entries: tuple[LineageEntry, ...] | list[LineageEntry]) -> None:
    if not entries:
        tree.add(f"[dim]no {label}[/dim]")
        return
    branch = tree.add(f"[bold {colour}]{label}[/bold {colour}]")
    for entry in entries:
        branch.add(f"[{colour}]{entry.name}[/{colour}] [dim](depth {entry.depth})[/dim]")


def display_lineage(
    console: Console,
    node: str,
    upstream: list[LineageEntry],
    downstream: list[LineageEntry],
    title: str = "Lineage",
) -> None:
    """Render a lineage tree showing upstream and downstream closures.

    Parameters
    ----------
    console:
        Rich console to write to.
    node:
        The focal node, attribute or data source.
    upstream:
        Upstream closure sorted by depth.
    downstream:
        Downstream closure sorted by depth.
    """
    tree = Tree(f"[bold yellow]{node}[/bold yellow]", guide_style="dim")
    _add_entries(tree, "upstream", "blue", upstream)
    _add_entries(tree, "downstream", "green", downstream)

    console.print(Panel(tree, title=title, border_style="yellow"))
    console.print(f"[bold]{len(upstream)}[/bold] upstream, [bold]{len(downstream)}[/bold] downstream")


def display_attribute_lineage(console: Console, result: AttributeLineage) -> None:
    title = "Attribute Lineage (structural)" if result.structural else "Attribute Lineage"
    display_lineage(console, result.attribute, list(result.upstream), list(result.downstream), title=title)


def display_datasource_lineage(console: Console, result: DatasourceLineage) -> None:
    display_lineage(
        console,
        result.datasource,
        list(result.upstream),
        list(result.downstream),
        title="Data Source Lineage",
    )


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------


def display_cycles(console: Console, cycles: list[list[str]]) -> None:
    if not cycles:
        console.print("[green]No dependency cycles detected.[/green]")
        return
    for cycle in cycles:
        console.print(f"[red]cycle:[/red] {' -> '.join(cycle)}")
    console.print(f"[red bold]{len(cycles)} cycle(s) detected.[/red bold]")


# ---------------------------------------------------------------------------
# Blast radius
# ---------------------------------------------------------------------------


def display_blast_radius(console: Console, report: BlastRadiusReport) -> None:
    """Render affected nodes bucketed by depth."""
    header = [
        f"[bold]Source:[/bold]    {report.source} ({_coloured_kind(report.source_type.value)})",
        f"[bold]Affected:[/bold]  {report.total_affected}",
        f"[bold]Max depth:[/bold] {report.max_depth}",
    ]
    if report.group_members:
        header.append(f"[bold]Members:[/bold]   {', '.join(report.group_members)}")
    console.print(Panel("\n".join(header), title="Blast Radius", border_style="red"))

    table = _table("Affected Nodes")
    table.add_column("Depth", style="dim", width=5, justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Schedule")
    table.add_column("Cluster")
    for node in report.downstream:
        table.add_row(
            str(node.depth),
            node.name,
            _coloured_kind(node.type.value),
            node.schedule or "-",
            node.cluster or "-",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Backfill
# ---------------------------------------------------------------------------


def display_backfill_plan(console: Console, plan: BackfillPlan) -> None:
    """Render a backfill plan wave by wave."""
    header = [
        f"[bold]Selected:[/bold]        {', '.join(plan.nodes)}",
        f"[bold]True sources:[/bold]    {', '.join(plan.true_sources) or '-'}",
        f"[bold]Downstream:[/bold]      {plan.total_downstream_pipelines}",
        f"[bold]Waves:[/bold]           {plan.total_waves}",
        f"[bold]Max parallelism:[/bold] {plan.max_parallelism}",
    ]
    console.print(Panel("\n".join(header), title="Backfill Plan", border_style="blue"))

    table = _table("Waves")
    table.add_column("Wave", style="dim", width=4, justify="right")
    table.add_column("Pipeline", style="bold")
    table.add_column("Schedule")
    table.add_column("Owner")
    table.add_column("Cluster")
    for wave in plan.waves:
        for p in wave.pipelines:
            table.add_row(str(wave.wave), p.name, p.schedule or "-", p.owner or "-", p.cluster or "-")
    console.print(table)

    if plan.unscheduled:
        console.print(f"[red]Not scheduled (dependency cycle):[/red] {', '.join(plan.unscheduled)}")


def display_airflow_plan(console: Console, plan: AirflowPlan) -> None:
    table = _table(f"Airflow DAGs ({plan.total_dags})")
    table.add_column("Wave", style="dim", width=4, justify="right")
    table.add_column("DAG", style="bold")
    table.add_column("Pipelines")
    table.add_column("URL", style="dim")
    for wave in plan.waves:
        for dag in wave.dags:
            table.add_row(str(wave.wave), dag.dag, ", ".join(dag.pipelines), dag.airflow_url)
    console.print(table)
    for edge in plan.edges:
        console.print(f"  {edge.source_dag} [dim]->[/dim] {edge.target_dag}")


# ---------------------------------------------------------------------------
# Weighted paths
# ---------------------------------------------------------------------------


def display_weighted_path(console: Console, report: WeightedPathReport) -> None:
    """Render a critical or costliest path with per-step offsets."""
    title = "Critical Path" if report.metric.value == "duration" else "Costliest Path"
    table = _table(title)
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Pipeline", style="bold")
    table.add_column("Duration", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Start", justify="right")
    table.add_column("Finish", justify="right")
    for idx, step in enumerate(report.path, start=1):
        table.add_row(
            str(idx),
            step.name,
            f"{step.duration:g}",
            f"{step.cost:.2f}",
            f"{step.start:g}",
            f"{step.finish:g}",
        )
    console.print(table)
    console.print(
        f"Total duration [bold]{report.total_duration:g}[/bold], "
        f"total cost [bold]{report.total_cost:.2f}[/bold] "
        f"({report.coverage.covered}/{report.coverage.total} pipelines carry {report.metric.value})"
    )


# ---------------------------------------------------------------------------
# Stats and export
# ---------------------------------------------------------------------------


def display_stats(console: Console, stats: EstateStats) -> None:
    counts = ", ".join(f"[bold]{v}[/bold] {k}" for k, v in stats.counts.items())
    console.print(counts)

    hubs = _table("Hubs")
    hubs.add_column("Name", style="bold")
    hubs.add_column("Type")
    hubs.add_column("Upstream", justify="right")
    hubs.add_column("Downstream", justify="right")
    hubs.add_column("Total", justify="right")
    for hub in stats.hubs:
        hubs.add_row(hub.name, _coloured_kind(hub.type.value), str(hub.upstream), str(hub.downstream), str(hub.total))
    console.print(hubs)

    coverage = _table("Coverage")
    coverage.add_column("Field", style="bold")
    coverage.add_column("Covered", justify="right")
    coverage.add_column("Missing")
    for name, cov in stats.coverage.items():
        coverage.add_row(name, f"{cov.covered}/{cov.total}", ", ".join(cov.missing) or "-")
    console.print(coverage)

    if stats.orphaned:
        console.print(f"[yellow]Orphaned data sources:[/yellow] {', '.join(stats.orphaned)}")
    display_cycles(console, [list(c) for c in stats.cycles])


def display_export_summary(console: Console, export: GraphExport) -> None:
    console.print(
        f"[bold]{export.meta['node_count']}[/bold] nodes, "
        f"[bold]{export.meta['edge_count']}[/bold] edges, "
        f"[bold]{export.meta['cluster_count']}[/bold] clusters. "
        "Use --json to emit the full export."
    )


# ---------------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------------


def display_timings(console: Console, timings: list[OperationTiming]) -> None:
    if not timings:
        console.print("[dim]No instrumented operations ran.[/dim]")
        return
    table = _table("Timings (ms)")
    table.add_column("Operation", style="bold")
    table.add_column("Calls", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Mean", justify="right")
    table.add_column("p95", justify="right")
    table.add_column("Max", justify="right")
    for t in timings:
        table.add_row(
            t.operation,
            str(t.calls),
            f"{t.total_ms:.3f}",
            f"{t.mean_ms:.3f}",
            f"{t.p95_ms:.3f}",
            f"{t.max_ms:.3f}",
        )
    console.print(table)
