"""pipeviz CLI application -- Typer-based interface to the estate engine.

Provides commands for validating an estate document and querying it:
lineage, cycles, blast radius, backfill waves, critical/costliest paths,
attribute lineage, statistics and graph export.  Human-readable output
goes to *stderr* via Rich; ``--json`` emits deterministic JSON on *stdout*
so that results compose with other tools.

Exit codes: 0 success (including "nothing found"), 1 input error (unknown
node, invalid selection, missing links), 3 configuration error.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console

from pipeviz_cli.display import (
    display_airflow_plan,
    display_attribute_lineage,
    display_backfill_plan,
    display_blast_radius,
    display_cycles,
    display_datasource_lineage,
    display_error,
    display_export_summary,
    display_lineage,
    display_notice,
    display_stats,
    display_timings,
    display_validation,
    display_weighted_path,
)
from pipeviz_engine.engine.estate import EstateEngine
from pipeviz_engine.loader.config_loader import (
    ConfigLoadError,
    ConfigValidationError,
    load_config_file,
)
from pipeviz_engine.models.analysis import (
    AnalysisError,
    AnalysisNotice,
    Direction,
    LineageEntry,
    PathMetric,
)
from pipeviz_engine.planner.result_serializer import serialize_result
from pipeviz_engine.telemetry.profiling import get_collector

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="pipeviz",
    help="pipeviz - lineage, impact and backfill analysis for declarative data estates",
    no_args_is_help=True,
)
console = Console(stderr=True)

EXIT_INPUT_ERROR = 1
EXIT_CONFIG_ERROR = 3

# Mutable global options populated by the Typer callback.
_json_output: bool = False
_config_path: Path = Path("pipeviz.json")


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    ctx: typer.Context,
    config: Path = typer.Option(
        Path("pipeviz.json"),
        "--config",
        "-c",
        help="Path to the estate document (JSON, or YAML with a .yaml/.yml suffix).",
        envvar="PIPEVIZ_CONFIG",
    ),
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit structured JSON to stdout instead of human-readable output.",
    ),
    profile: bool = typer.Option(
        False,
        "--profile",
        help="Print per-operation timings to stderr when the command finishes.",
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output, _config_path  # noqa: PLW0603
    _json_output = json_mode
    _config_path = config
    if profile:
        get_collector().clear()
        ctx.call_on_close(lambda: display_timings(console, get_collector().report()))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit(result: Any) -> None:
    sys.stdout.write(serialize_result(result) + "\n")


def _config_failure(errors: list[str]) -> NoReturn:
    if _json_output:
        _emit({"valid": False, "errors": errors})
    else:
        console.print(f"[red]Invalid configuration '{_config_path}':[/red]")
        for message in errors:
            console.print(f"  [red]-[/red] {message}")
    raise typer.Exit(code=EXIT_CONFIG_ERROR)


def _load_engine() -> EstateEngine:
    """Load the configured estate document or exit with code 3."""
    try:
        return EstateEngine.from_file(_config_path)
    except ConfigValidationError as exc:
        _config_failure(exc.errors)
    except ConfigLoadError as exc:
        _config_failure([str(exc)])


def _fail(error: AnalysisError) -> NoReturn:
    if _json_output:
        _emit(error)
    else:
        display_error(console, error)
    raise typer.Exit(code=EXIT_INPUT_ERROR)


def _notice(message: str, payload: Any = None) -> None:
    if _json_output:
        _emit(payload)
    else:
        display_notice(console, message)


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@app.command()
def validate() -> None:
    """Validate the estate document and report non-fatal warnings."""
    try:
        config = load_config_file(_config_path)
    except ConfigValidationError as exc:
        _config_failure(exc.errors)
    except ConfigLoadError as exc:
        _config_failure([str(exc)])

    engine = EstateEngine(config, source_path=_config_path)
    warnings = engine.warnings
    if _json_output:
        _emit(
            {
                "valid": True,
                "warnings": warnings,
                "counts": {
                    "pipelines": len(config.pipelines),
                    "datasources": len(config.datasources),
                    "clusters": len(config.clusters),
                    "groups": len(config.groups),
                },
                "fingerprint": engine.fingerprint,
            }
        )
    else:
        display_validation(console, config, warnings)


# ---------------------------------------------------------------------------
# lineage
# ---------------------------------------------------------------------------


@app.command()
def lineage(
    node: str = typer.Argument(..., help="Pipeline, data source or group name."),
    direction: Direction | None = typer.Option(
        None,
        "--direction",
        "-d",
        help="Only walk one direction.  Both directions by default.",
    ),
    depth: int | None = typer.Option(
        None,
        "--depth",
        help="Maximum hops to traverse.",
        min=1,
    ),
) -> None:
    """Display the upstream and downstream closure of a node."""
    engine = _load_engine()

    upstream: list[LineageEntry] = []
    downstream: list[LineageEntry] = []
    for walk in (Direction.UPSTREAM, Direction.DOWNSTREAM):
        if direction is not None and direction is not walk:
            continue
        result = engine.lineage_of(node, walk, depth)
        if isinstance(result, AnalysisError):
            _fail(result)
        if walk is Direction.UPSTREAM:
            upstream = result
        else:
            downstream = result

    if _json_output:
        payload: dict[str, Any] = {"node": node}
        if direction in (None, Direction.UPSTREAM):
            payload["upstream"] = upstream
        if direction in (None, Direction.DOWNSTREAM):
            payload["downstream"] = downstream
        _emit(payload)
    else:
        display_lineage(console, node, upstream, downstream)


# ---------------------------------------------------------------------------
# cycles
# ---------------------------------------------------------------------------


@app.command()
def cycles(
    no_collapse: bool = typer.Option(
        False,
        "--no-collapse",
        help="Treat every grouped pipeline as its own node.",
    ),
) -> None:
    """Detect circular dependencies among pipelines."""
    engine = _load_engine()
    found = engine.detect_cycles(collapse_groups=False if no_collapse else None)
    if _json_output:
        _emit(found)
    else:
        display_cycles(console, found)


# ---------------------------------------------------------------------------
# blast
# ---------------------------------------------------------------------------


@app.command()
def blast(
    node: str = typer.Argument(..., help="Pipeline, data source or group name."),
) -> None:
    """Show everything downstream that a change to NODE could affect."""
    engine = _load_engine()
    report = engine.blast_radius(node)
    if isinstance(report, AnalysisError):
        _fail(report)
    if report is None:
        _notice(f"No downstream impact for '{node}'.")
        return
    if _json_output:
        _emit(report)
    else:
        display_blast_radius(console, report)


# ---------------------------------------------------------------------------
# backfill
# ---------------------------------------------------------------------------


@app.command()
def backfill(
    pipelines: list[str] = typer.Argument(..., help="Pipelines to re-run."),
    airflow: bool = typer.Option(
        False,
        "--airflow",
        help="Project the plan onto Airflow DAGs using each pipeline's airflow link.",
    ),
) -> None:
    """Plan the re-run of PIPELINES and everything downstream, wave by wave."""
    engine = _load_engine()
    plan = engine.plan_backfill(pipelines)
    if isinstance(plan, AnalysisError):
        _fail(plan)
    if isinstance(plan, AnalysisNotice):
        _notice(plan.message, plan)
        return

    if not airflow:
        if _json_output:
            _emit(plan)
        else:
            display_backfill_plan(console, plan)
        return

    projected = engine.project_to_scheduler(plan)
    if isinstance(projected, AnalysisError):
        _fail(projected)
    if _json_output:
        _emit(projected)
    else:
        display_airflow_plan(console, projected)


# ---------------------------------------------------------------------------
# path
# ---------------------------------------------------------------------------


@app.command()
def path(
    metric: PathMetric = typer.Option(
        PathMetric.DURATION,
        "--metric",
        "-m",
        help="Weight to maximise: duration (critical path) or cost (costliest path).",
    ),
) -> None:
    """Show the critical (or costliest) path through the pipeline DAG."""
    engine = _load_engine()
    report = engine.weighted_path(metric)
    if isinstance(report, AnalysisError):
        _fail(report)
    if report is None:
        _notice(f"No pipeline declares {metric.value}; path analysis is not applicable.")
        return
    if _json_output:
        _emit(report)
    else:
        display_weighted_path(console, report)


# ---------------------------------------------------------------------------
# attribute / datasource
# ---------------------------------------------------------------------------


@app.command()
def attribute(
    attr_id: str = typer.Argument(..., help="Attribute id, e.g. 'raw_users::address::city'."),
    depth: int | None = typer.Option(None, "--depth", help="Maximum hops to traverse.", min=1),
) -> None:
    """Display column-level lineage for one attribute."""
    engine = _load_engine()
    result = engine.attribute_lineage(attr_id, depth)
    if isinstance(result, AnalysisError):
        _fail(result)
    if _json_output:
        _emit(result)
    else:
        display_attribute_lineage(console, result)


@app.command()
def datasource(
    name: str = typer.Argument(..., help="Declared data source name."),
) -> None:
    """Display which data sources feed, and are fed by, NAME via attributes."""
    engine = _load_engine()
    result = engine.datasource_lineage(name)
    if isinstance(result, AnalysisError):
        _fail(result)
    if _json_output:
        _emit(result)
    else:
        display_datasource_lineage(console, result)


# ---------------------------------------------------------------------------
# stats / export
# ---------------------------------------------------------------------------


@app.command()
def stats() -> None:
    """Summarise the estate: counts, hubs, coverage, orphans and cycles."""
    engine = _load_engine()
    result = engine.stats()
    if _json_output:
        _emit(result)
    else:
        display_stats(console, result)


@app.command()
def export(
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the JSON export to this file.",
    ),
) -> None:
    """Export nodes, typed edges and clusters as structured JSON."""
    engine = _load_engine()
    result = engine.export_graph()
    if output is not None:
        output.write_text(serialize_result(result) + "\n", encoding="utf-8")
        console.print(f"Export written to [bold]{output}[/bold]")
        return
    if _json_output:
        _emit(result)
    else:
        display_export_summary(console, result)
