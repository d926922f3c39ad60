"""Pipeline commands for modelmesh CLI."""

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from modelmesh.cli.utils import abort, echo_json, load_directory, read_input
from modelmesh.compiler import load_pipeline
from modelmesh.drivers.execution_store import JsonlExecutionStore
from modelmesh.kernel.config import load_config
from modelmesh.kernel.domain.dag import resolve_plan
from modelmesh.kernel.domain.execution import ExecutionRecord, RunStatus
from modelmesh.kernel.domain.pipeline import PipelineGraph
from modelmesh.kernel.exceptions import ConfigurationError, GraphError
from modelmesh.kernel.orchestration import PipelineOrchestrator
from modelmesh.kernel.ports.model_directory import ModelDirectory

app = typer.Typer()
console = Console()

PipelineArgument = Annotated[Path, typer.Argument(help="Path to pipeline YAML file")]


def _load_graph(pipeline_path: Path) -> PipelineGraph:
    try:
        return load_pipeline(pipeline_path)
    except ConfigurationError as e:
        abort(str(e))


@app.command("plan")
def plan_pipeline(pipeline_path: PipelineArgument) -> None:
    """Resolve the pipeline into execution levels without running it."""
    graph = _load_graph(pipeline_path)
    try:
        plan = resolve_plan(graph)
    except GraphError as e:
        console.print(f"[red]✗ {e.kind.value}: {e.detail}[/red]")
        raise typer.Exit(1)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Level", justify="right")
    table.add_column("Nodes")
    table.add_column("Models", style="dim")
    for index, level in enumerate(plan.levels):
        models = [graph.node(node_id).model_id for node_id in level]
        table.add_row(str(index), ", ".join(level), ", ".join(models))

    console.print(f"[cyan]Pipeline:[/cyan] {graph.name or graph.id}")
    console.print(table)
    console.print(
        f"[green]✓ {plan.node_count} node(s) in {len(plan)} level(s)[/green]"
    )


async def _run(
    graph: PipelineGraph,
    directory: ModelDirectory,
    initial_input: Any,
    store_path: Path | None,
    deadline_ms: float | None,
    config_path: Path | None,
) -> ExecutionRecord:
    config = load_config(config_path)
    store = JsonlExecutionStore(store_path) if store_path is not None else None
    orchestrator = PipelineOrchestrator.from_config(config, directory, store=store)
    try:
        return await orchestrator.execute(graph, initial_input, deadline_ms=deadline_ms)
    finally:
        await orchestrator.invoker.aclose()


@app.command("run")
def run_pipeline(
    pipeline_path: PipelineArgument,
    catalog: Annotated[
        Path, typer.Option("--catalog", "-c", help="Path to model catalog YAML file")
    ],
    input_file: Annotated[
        Path | None, typer.Option("--input", "-i", help="JSON file with the initial input")
    ] = None,
    store: Annotated[
        Path | None, typer.Option("--store", "-s", help="JSONL execution log to append to")
    ] = None,
    deadline_ms: Annotated[
        float | None, typer.Option("--deadline-ms", help="Pipeline deadline in milliseconds")
    ] = None,
    config: Annotated[
        Path | None, typer.Option("--config", help="TOML configuration file")
    ] = None,
) -> None:
    """Execute a pipeline and print its execution record as JSON.

    Exits with status 1 when the run fails.
    """
    graph = _load_graph(pipeline_path)
    directory = load_directory(catalog)
    initial_input = read_input(input_file)

    try:
        record = asyncio.run(_run(graph, directory, initial_input, store, deadline_ms, config))
    except ConfigurationError as e:
        abort(str(e))

    echo_json(record.to_json())
    if record.status == RunStatus.FAILED:
        raise typer.Exit(1)
