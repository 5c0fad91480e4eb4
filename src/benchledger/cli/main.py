"""Main CLI entry point for benchledger.

This module defines the Typer application and all CLI commands.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, TypeVar

import typer
from pydantic import ValidationError

from benchledger import __version__
from benchledger.benchmarks import BenchmarkHistory, CommitInfo, IngestRequest, JSONFileStore
from benchledger.core.config import Settings, load_config
from benchledger.core.exceptions import BenchLedgerError, ConfigurationError
from benchledger.reporters import ConsoleReporter, JSONReporter, MarkdownReporter

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from benchledger.benchmarks import IngestResult

T = TypeVar("T")

# Create the main Typer app
app = typer.Typer(
    name="benchledger",
    help="benchledger: continuous benchmark history and regression alerts for CI.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, Any] = {
    "json": False,
    "no_color": False,
    "store": None,
    "config": None,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"benchledger v{__version__}")
        raise typer.Exit()


def _configure_logging(level: str) -> None:
    logging.basicConfig(format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    try:
        logging.getLogger().setLevel(level.upper())
    except ValueError:
        typer.echo(f"Error: unknown log level '{level}'", err=True)
        raise typer.Exit(1) from None


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
    store: Annotated[
        Path | None,
        typer.Option(
            "--store",
            "-s",
            help="History store file (.js or .json). Overrides BENCHLEDGER_STORE_PATH.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Ledger policy YAML. Overrides BENCHLEDGER_CONFIG_PATH.",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Logging level (DEBUG, INFO, WARNING, ERROR). Overrides BENCHLEDGER_LOG_LEVEL.",
        ),
    ] = None,
) -> None:
    """benchledger: continuous benchmark history for CI.

    Record benchmark results per commit, keep them in a dashboard-ready
    store and flag regressions against the previous run.
    """
    state["json"] = json_output
    state["no_color"] = no_color
    state["store"] = store
    state["config"] = config
    _configure_logging(log_level or Settings().log_level)


def _settings() -> Settings:
    overrides: dict[str, Any] = {}
    if state["store"] is not None:
        overrides["store_path"] = state["store"]
    if state["config"] is not None:
        overrides["config_path"] = state["config"]
    return Settings(**overrides)


def _history() -> BenchmarkHistory:
    """Build the history service from settings and the ledger policy."""
    settings = _settings()
    try:
        config = load_config(settings)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    store = JSONFileStore(settings.store_path, lock_timeout=config.lock_timeout)
    return BenchmarkHistory(store, config)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning library errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except BenchLedgerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e


def _console() -> ConsoleReporter:
    return ConsoleReporter(use_colors=not state["no_color"])


def _read_input(path: Path) -> bytes:
    if str(path) == "-":
        return sys.stdin.buffer.read()
    try:
        return path.read_bytes()
    except OSError as e:
        typer.echo(f"Error: cannot read {path}: {e}", err=True)
        raise typer.Exit(1) from e


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(_read_input(path))
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {what} {path} is not valid JSON: {e}", err=True)
        raise typer.Exit(1) from e


def _load_commit(commit_file: Path | None, commit_id: str | None, message: str, url: str) -> CommitInfo:
    """Commit metadata from a JSON file (e.g. a push event's head_commit) or options."""
    if commit_file is None and not commit_id:
        typer.echo("Error: Either --commit or --commit-id is required.", err=True)
        raise typer.Exit(1)

    data: dict[str, Any] = {}
    if commit_file is not None:
        loaded = _read_json(commit_file, "commit file")
        if not isinstance(loaded, dict):
            typer.echo(f"Error: commit file {commit_file} must contain a JSON object", err=True)
            raise typer.Exit(1)
        # accept a whole push event as well as the bare commit
        data = dict(loaded.get("head_commit") or loaded)
    if commit_id:
        data["id"] = commit_id
    if message:
        data["message"] = message
    if url:
        data["url"] = url

    try:
        return CommitInfo.model_validate(data)
    except ValidationError as e:
        typer.echo(f"Error: invalid commit metadata: {e}", err=True)
        raise typer.Exit(1) from e


def _report_ingest(result: IngestResult, summary: Path | None, fail_on_alert: bool) -> None:
    if state["json"]:
        typer.echo(JSONReporter().report(result))
    else:
        _console().report_ingest(result)

    if summary is not None:
        MarkdownReporter().report_to_file(result, summary)

    if fail_on_alert and result.has_critical:
        if not state["json"]:
            typer.echo(f"Error: {len(result.alerts)} performance regression(s) detected", err=True)
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"benchledger v{__version__}")


@app.command()
def ingest(
    output_file: Annotated[
        Path,
        typer.Argument(help="Benchmark harness output ('-' reads stdin)."),
    ],
    tool: Annotated[
        str,
        typer.Option(
            "--tool",
            "-t",
            help="Harness that produced the output (cargo, go, benchmarkjs, pytest, googlecpp, ...).",
        ),
    ],
    commit_file: Annotated[
        Path | None,
        typer.Option(
            "--commit",
            help="JSON file with the commit metadata (a push event or its head_commit).",
        ),
    ] = None,
    commit_id: Annotated[
        str | None,
        typer.Option(
            "--commit-id",
            help="Commit hash. Overrides the id from --commit.",
        ),
    ] = None,
    commit_message: Annotated[
        str,
        typer.Option("--commit-message", help="Commit message."),
    ] = "",
    commit_url: Annotated[
        str,
        typer.Option("--commit-url", help="Link to the commit."),
    ] = "",
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            "-n",
            help="Ledger to record into (defaults to the tool).",
        ),
    ] = None,
    date: Annotated[
        int | None,
        typer.Option(
            "--date",
            help="Ingestion time in epoch milliseconds (defaults to now).",
        ),
    ] = None,
    overwrite: Annotated[
        bool | None,
        typer.Option(
            "--overwrite/--no-overwrite",
            help="Replace an already recorded commit (defaults to the configured policy).",
        ),
    ] = None,
    fail_on_alert: Annotated[
        bool,
        typer.Option(
            "--fail-on-alert",
            help="Exit with code 1 when a critical regression is detected.",
        ),
    ] = False,
    summary: Annotated[
        Path | None,
        typer.Option(
            "--summary",
            help="Append a Markdown summary to this file (e.g. $GITHUB_STEP_SUMMARY).",
        ),
    ] = None,
) -> None:
    """Parse harness output and record it for a commit.

    Examples:
        benchledger ingest output.txt --tool cargo --commit-id "$GITHUB_SHA"
        benchledger ingest bench.json -t pytest --commit event.json --fail-on-alert
        go test -bench . | benchledger ingest - -t go --commit-id abc123 --name api
    """
    commit = _load_commit(commit_file, commit_id, commit_message, commit_url)
    raw = _read_input(output_file)
    history = _history()
    result = _run(
        history.ingest_output(raw, tool=tool, commit=commit, name=name, date=date, overwrite=overwrite)
    )
    _report_ingest(result, summary, fail_on_alert)


@app.command("ingest-request")
def ingest_request(
    request_file: Annotated[
        Path,
        typer.Argument(help="Ingest request JSON {repoUrl, tool, commit, date, benches} ('-' reads stdin)."),
    ],
    overwrite: Annotated[
        bool | None,
        typer.Option(
            "--overwrite/--no-overwrite",
            help="Replace an already recorded commit (defaults to the configured policy).",
        ),
    ] = None,
    fail_on_alert: Annotated[
        bool,
        typer.Option(
            "--fail-on-alert",
            help="Exit with code 1 when a critical regression is detected.",
        ),
    ] = False,
    summary: Annotated[
        Path | None,
        typer.Option(
            "--summary",
            help="Append a Markdown summary to this file.",
        ),
    ] = None,
) -> None:
    """Record a pre-parsed ingest request.

    Example:
        benchledger ingest-request request.json --fail-on-alert
    """
    data = _read_json(request_file, "request")
    try:
        request = IngestRequest.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        typer.echo(f"Error: invalid ingest request: {e}", err=True)
        raise typer.Exit(1) from e

    history = _history()
    result = _run(history.ingest_request(request, overwrite=overwrite))
    _report_ingest(result, summary, fail_on_alert)


@app.command()
def series(
    tool: Annotated[str, typer.Argument(help="Ledger name.")],
    name: Annotated[str, typer.Argument(help="Benchmark name.")],
) -> None:
    """Show the recorded values of one benchmark, oldest first.

    Example:
        benchledger series cargo fib_20
    """
    history = _history()
    points = _run(history.get_series(tool, name))

    if state["json"]:
        typer.echo(JSONReporter().report_series(tool, name, points))
        return

    unit = ""
    if points:
        latest = _run(history.get_latest(tool, 1))
        bench = latest[0].bench(name) if latest else None
        unit = bench.unit if bench is not None else ""
    _console().report_series(tool, name, points, unit=unit)


@app.command()
def latest(
    tool: Annotated[str, typer.Argument(help="Ledger name.")],
    count: Annotated[
        int,
        typer.Option("--count", "-n", min=0, help="Number of entries to show."),
    ] = 1,
) -> None:
    """Show the most recent entries of a ledger, newest first.

    Example:
        benchledger latest cargo -n 5
    """
    history = _history()
    entries = _run(history.get_latest(tool, count))

    if state["json"]:
        typer.echo(JSONReporter().report_entries(entries))
    else:
        _console().report_entries(tool, entries)


@app.command()
def alerts(
    tool: Annotated[str, typer.Argument(help="Ledger name.")],
    commit_id: Annotated[str, typer.Argument(help="Commit of a recorded entry.")],
) -> None:
    """Recompute the regression alerts of a recorded commit.

    Example:
        benchledger alerts cargo 9f1c2e7
    """
    history = _history()
    result = _run(history.get_regression(tool, commit_id))

    if state["json"]:
        typer.echo(JSONReporter().report_alerts(result.alerts))
        return

    reporter = _console()
    reporter.print_header(f"{tool} @ {commit_id[:12]}")
    for line in result.summary().splitlines():
        typer.echo(f"  {line}" if line else "")


@app.command()
def tools() -> None:
    """List the ledgers in the store."""
    history = _history()
    names = _run(history.list_tools())

    if state["json"]:
        typer.echo(json.dumps(names))
        return
    if not names:
        typer.echo("No ledgers recorded yet.")
        return
    for tool_name in names:
        typer.echo(tool_name)


if __name__ == "__main__":
    app()
