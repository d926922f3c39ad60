"""modelmesh CLI - Main entrypoint."""

import typer
from rich.console import Console

from modelmesh.cli.commands import models_cmd, pipeline_cmd, runs_cmd
from modelmesh.kernel.logging import configure_logging

app = typer.Typer(
    name="modelmesh",
    help="modelmesh - Directory and pipeline orchestration for remote AI models.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

console = Console()

app.add_typer(models_cmd.app, name="models", help="Inspect and probe model catalogs")
app.add_typer(pipeline_cmd.app, name="pipeline", help="Plan and run pipelines")
app.add_typer(runs_cmd.app, name="runs", help="Inspect stored execution records")


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Enable debug logging"),
    log_format: str = typer.Option(
        "structured", "--log-format", help="Log format: console|json|structured|rich"
    ),
) -> None:
    """modelmesh CLI.

    Global flags are parsed here and stored on `ctx.obj` for subcommands.
    """
    if ctx.obj is None:
        ctx.obj = {}
    ctx.obj["verbose"] = verbose

    # Rebind sinks on every invocation so logs follow the current stderr
    configure_logging(
        level="DEBUG" if verbose else "WARNING",
        format=log_format,  # type: ignore[arg-type]
        force_reconfigure=True,
    )


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
