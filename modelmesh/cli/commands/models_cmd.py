"""Model catalog commands for modelmesh CLI."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from modelmesh.cli.utils import abort, echo_json, load_directory, read_input
from modelmesh.drivers.execution_store import JsonlExecutionStore
from modelmesh.kernel.config import load_config
from modelmesh.kernel.domain.models import ModelMetadata
from modelmesh.kernel.exceptions import ModelMeshError
from modelmesh.kernel.orchestration import (
    InvocationPolicy,
    InvocationResult,
    Invoker,
    PipelineOrchestrator,
)

app = typer.Typer()
console = Console()

CatalogOption = Annotated[
    Path, typer.Option("--catalog", "-c", help="Path to model catalog YAML file")
]


def _models_table(models: list[ModelMetadata]) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Latency (ms)", justify="right")
    table.add_column("Cost / unit", justify="right")
    table.add_column("Policy")
    table.add_column("Tags", style="dim")
    for model in models:
        table.add_row(
            model.id,
            model.name,
            model.model_type.value,
            model.status.value,
            str(model.latency_ms),
            "-" if model.cost_per_unit is None else f"{model.cost_per_unit:g}",
            model.security_policy.value,
            ", ".join(sorted(model.tags)),
        )
    return table


@app.command("list")
def list_models(
    catalog: CatalogOption,
    model_type: Annotated[str | None, typer.Option("--type", help="Filter by model type")] = None,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", help="Required tag (repeatable)")
    ] = None,
    status: Annotated[str | None, typer.Option("--status", help="Filter by status")] = None,
    max_latency: Annotated[
        float | None, typer.Option("--max-latency", help="Maximum latency estimate in ms")
    ] = None,
) -> None:
    """List catalog models matching every given filter."""
    directory = load_directory(catalog)
    models = asyncio.run(
        directory.asearch(
            model_type=model_type, tags=tag, status=status, max_latency_ms=max_latency
        )
    )
    if not models:
        console.print("[yellow]No models match[/yellow]")
        return
    console.print(_models_table(models))


@app.command("probe")
def probe_model(
    model_id: Annotated[str, typer.Argument(help="Model identifier")],
    catalog: CatalogOption,
    timeout_ms: Annotated[float, typer.Option("--timeout-ms", help="Probe timeout")] = 5000,
) -> None:
    """Call a model's health-check URL and report its status."""
    directory = load_directory(catalog)

    async def _probe() -> str:
        invoker = Invoker(directory, default_policy=InvocationPolicy(timeout_ms=timeout_ms))
        try:
            return (await invoker.aprobe(model_id)).value
        finally:
            await invoker.aclose()

    try:
        status = asyncio.run(_probe())
    except ModelMeshError as e:
        abort(str(e))

    color = "green" if status == "online" else "red"
    console.print(f"[bold]{model_id}[/bold]: [{color}]{status}[/{color}]")
    if status != "online":
        raise typer.Exit(1)


@app.command("invoke")
def invoke_model(
    model_id: Annotated[str, typer.Argument(help="Model identifier")],
    catalog: CatalogOption,
    input_file: Annotated[
        Path | None, typer.Option("--input", "-i", help="JSON file with the model input")
    ] = None,
    store: Annotated[
        Path | None, typer.Option("--store", "-s", help="JSONL execution log to append to")
    ] = None,
    timeout_ms: Annotated[
        float | None, typer.Option("--timeout-ms", min=1, help="Per-attempt timeout")
    ] = None,
    max_retries: Annotated[int | None, typer.Option("--max-retries", min=0)] = None,
    config: Annotated[
        Path | None, typer.Option("--config", help="TOML configuration file")
    ] = None,
) -> None:
    """Call one model outside any pipeline and print the result as JSON.

    Exits with status 1 unless the call succeeds.
    """
    directory = load_directory(catalog)
    payload = read_input(input_file)
    overrides = {
        key: value
        for key, value in (("timeout_ms", timeout_ms), ("max_retries", max_retries))
        if value is not None
    }

    async def _invoke() -> InvocationResult:
        execution_store = JsonlExecutionStore(store) if store is not None else None
        orchestrator = PipelineOrchestrator.from_config(
            load_config(config), directory, store=execution_store
        )
        policy = orchestrator.invoker.default_policy.with_overrides(overrides)
        try:
            return await orchestrator.execute_single(
                model_id, payload, policy=policy, persist=store is not None
            )
        finally:
            await orchestrator.invoker.aclose()

    try:
        result = asyncio.run(_invoke())
    except ModelMeshError as e:
        abort(str(e))

    echo_json(result.model_dump_json())
    if not result.ok:
        raise typer.Exit(1)
