"""Execution history commands for modelmesh CLI."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from modelmesh.cli.utils import abort, echo_json
from modelmesh.drivers.execution_store import JsonlExecutionStore
from modelmesh.kernel.exceptions import ExecutionStoreError

app = typer.Typer()
console = Console()

StoreOption = Annotated[Path, typer.Option("--store", "-s", help="JSONL execution log")]


def _open_store(store: Path) -> JsonlExecutionStore:
    if not store.exists():
        abort(f"execution log not found: {store}")
    return JsonlExecutionStore(store)


@app.command("list")
def list_runs(
    store: StoreOption,
    pipeline: Annotated[
        str | None, typer.Option("--pipeline", "-p", help="Only runs of this pipeline")
    ] = None,
    status: Annotated[str | None, typer.Option("--status", help="Filter by status")] = None,
    limit: Annotated[int, typer.Option("--limit")] = 50,
) -> None:
    """List stored runs, newest first."""
    try:
        records = asyncio.run(
            _open_store(store).alist(pipeline_id=pipeline, status=status, limit=limit)
        )
    except ExecutionStoreError as e:
        abort(str(e))

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Run ID", style="cyan")
    table.add_column("Pipeline")
    table.add_column("Status")
    table.add_column("Invocations", justify="right")
    table.add_column("Latency (ms)", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Started")
    for record in records:
        color = "green" if record.status == "completed" else "red"
        latency = record.total_latency_ms
        table.add_row(
            record.id,
            record.pipeline_id or "-",
            f"[{color}]{record.status.value}[/{color}]",
            str(len(record.invocations)),
            "-" if latency is None else f"{latency:.0f}",
            f"{record.total_cost:g}",
            record.started_at.isoformat(timespec="seconds"),
        )
    console.print(table)


@app.command("show")
def show_run(
    run_id: Annotated[str, typer.Argument(help="Execution record id")],
    store: StoreOption,
) -> None:
    """Print one execution record as JSON."""
    try:
        record = asyncio.run(_open_store(store).aget(run_id))
    except ExecutionStoreError as e:
        abort(str(e))
    if record is None:
        abort(f"run {run_id} not found")
    echo_json(record.to_json())


@app.command("stats")
def run_stats(
    store: StoreOption,
    pipeline: Annotated[
        str | None, typer.Option("--pipeline", "-p", help="Only runs of this pipeline")
    ] = None,
) -> None:
    """Show aggregate figures over stored runs."""
    try:
        summary = asyncio.run(_open_store(store).asummary(pipeline_id=pipeline))
    except ExecutionStoreError as e:
        abort(str(e))

    rate = summary.success_rate
    average = summary.average_latency_ms
    console.print(f"[bold]Runs:[/bold] {summary.runs}")
    console.print(f"[bold]Completed:[/bold] {summary.completed}")
    console.print(f"[bold]Failed:[/bold] {summary.failed}")
    console.print(f"[bold]Invocations:[/bold] {summary.invocations}")
    console.print(f"[bold]Success rate:[/bold] {'-' if rate is None else f'{rate:.0%}'}")
    console.print(
        f"[bold]Average latency:[/bold] {'-' if average is None else f'{average:.0f} ms'}"
    )
    console.print(f"[bold]Total cost:[/bold] {summary.total_cost:g}")
