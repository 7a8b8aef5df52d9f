"""Analyze command: runs every metric over a repository's history."""

import json
from pathlib import Path
from typing import Callable, Optional

import typer

from ..analyzers.classification import CommitCategory
from ..analyzers.sizing import SizeCategory
from ..api import METRICS, HistoryReport, analyze as analyze_repository
from ..exceptions import GitVitalsError
from ..logging_config import setup_logging
from . import app
from ._common import console, to_jsonable


@app.command()
def analyze(
    path: Path = typer.Argument(
        Path("."),
        help="Repository to analyze (default: current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
        readable=True,
    ),
    since: Optional[str] = typer.Option(
        None,
        "--since",
        "-s",
        help="Window start: 30d, 2w, 6m, 1y or an ISO date (default: 90d)",
    ),
    until: Optional[str] = typer.Option(
        None,
        "--until",
        "-u",
        help="Window end as an ISO date (default: now)",
    ),
    metric: Optional[list[str]] = typer.Option(
        None,
        "--metric",
        "-m",
        help=f"Only compute this metric (repeatable): {', '.join(METRICS)}",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors",
    ),
):
    """
    Derive engineering-health metrics from a repository's git history.

    [bold cyan]Examples:[/bold cyan]

      git-vitals analyze

      git-vitals analyze ../service --since 6m --json

      git-vitals analyze -m deployments -m lead_time
    """
    logger = setup_logging(verbose=verbose, quiet=quiet)

    unknown = sorted(set(metric or ()) - set(METRICS))
    if unknown:
        raise typer.BadParameter(f"unknown metric(s): {', '.join(unknown)}", param_hint="--metric")

    try:
        report = analyze_repository(
            path,
            since=since,
            until=until,
            config_file=config,
            metrics=metric or None,
            verbose=verbose,
            quiet=quiet,
        )
    except GitVitalsError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)

    if json_output:
        _output_json(report)
    else:
        _output_rich(report)

    if report.failed:
        raise typer.Exit(1)


def _output_json(report: HistoryReport) -> None:
    """Machine-readable JSON output."""
    output = {
        "repository": report.repository,
        "window": {"start": report.window.start.isoformat(), "end": report.window.end.isoformat()},
        "commit_count": report.commit_count,
        "metrics": {
            name: {"error": result.error} if result.error else to_jsonable(result.value)
            for name, result in report.results.items()
        },
    }
    print(json.dumps(output, indent=2))


def _commit_types(value) -> str:
    return (
        f"bugfix {value.bugfix_ratio}% · feature {value.feature_ratio}% · "
        f"quality {value.quality_score}"
    )


def _commit_sizes(value) -> str:
    huge = value.category_counts.get(SizeCategory.HUGE, 0)
    return f"risk {value.risk_score} · avg size {value.avg_commit_size} · {huge} huge"


def _file_churn(value) -> str:
    s = value.summary
    return f"{s.total_files_changed} files · {s.high_churn_files} high churn · {s.hotspot_percentage}% hotspots"


def _file_ownership(value) -> str:
    s = value.summary
    return f"avg concentration {s.avg_concentration} · {s.single_owner_files} single-owner files"


def _cochange(value) -> str:
    s = value.summary
    return f"{s.total_file_pairs} pairs · {s.high_coupling_pairs} high · {len(value.hotspots)} hotspots"


def _reverts(value) -> str:
    o = value.overview
    return f"{o.revert_commits} reverts · revert rate {o.revert_rate}% · stability {o.stability_score}"


def _deployments(value) -> str:
    f = value.frequency
    return (
        f"{f.total_deployments} deployments · {f.deployments_per_week}/week ({f.category}) · "
        f"{value.stability.predictability}"
    )


def _lead_time(value) -> str:
    m = value.metrics
    return (
        f"avg {m.avg_lead_time_days}d · coverage {m.coverage} · "
        f"flow {m.flow_efficiency} ({m.performance_category})"
    )


def _activity(value) -> str:
    return (
        f"{len(value.by_author)} authors · {value.avg_commits_per_active_day}/active day · "
        f"{value.working_hours_percentage}% in working hours"
    )


HEADLINES: dict[str, Callable] = {
    "commit_types": _commit_types,
    "commit_sizes": _commit_sizes,
    "file_churn": _file_churn,
    "file_ownership": _file_ownership,
    "cochange": _cochange,
    "reverts": _reverts,
    "deployments": _deployments,
    "lead_time": _lead_time,
    "activity": _activity,
}


def _output_rich(report: HistoryReport) -> None:
    """Human-readable Rich table output."""
    from rich.table import Table

    window = f"{report.window.start:%Y-%m-%d} → {report.window.end:%Y-%m-%d}"
    table = Table(
        title=f"Git Vitals · {report.repository} · {window} · {report.commit_count} commits",
        show_lines=False,
        pad_edge=True,
    )
    table.add_column("Metric", style="bold cyan")
    table.add_column("Summary")

    for name, result in report.results.items():
        if result.error:
            table.add_row(name, f"[red]failed:[/red] {result.error}")
        else:
            table.add_row(name, HEADLINES[name](result.value))

    console.print()
    console.print(table)

    types = report.results.get("commit_types")
    if types is not None and types.succeeded and types.value.total_commits:
        counts = ", ".join(
            f"{category.value} {types.value.counts[category]}" for category in CommitCategory
        )
        console.print(f"[dim]Commit mix: {counts}[/dim]")
