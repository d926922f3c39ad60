"""CLI helper utilities for modelmesh commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console

from modelmesh.compiler import load_models
from modelmesh.drivers.model_directory import InMemoryModelDirectory
from modelmesh.kernel.exceptions import ModelMeshError

console = Console()


def abort(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def load_directory(catalog: Path) -> InMemoryModelDirectory:
    """Build an in-memory directory from a catalog file, aborting on errors."""
    try:
        return InMemoryModelDirectory(load_models(catalog))
    except ModelMeshError as e:
        abort(str(e))


def echo_json(obj: Any) -> None:
    """Print ``obj`` (a JSON string or a JSON-compatible value) as indented JSON."""
    if isinstance(obj, str):
        obj = json.loads(obj)
    typer.echo(json.dumps(obj, default=str, indent=2))


def read_input(input_file: Path | None) -> Any:
    """Read a JSON document used as model or pipeline input (None without a file)."""
    if input_file is None:
        return None
    try:
        return json.loads(input_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        abort(f"cannot read input file {input_file}: {e}")
