"""CLI command modules."""

from . import models_cmd, pipeline_cmd, runs_cmd

__all__ = ["models_cmd", "pipeline_cmd", "runs_cmd"]
