"""Ports consumed and produced by the orchestration core."""

from modelmesh.kernel.ports.execution_store import ExecutionStore
from modelmesh.kernel.ports.model_directory import ModelDirectory, OutcomeStatus

__all__ = ["ExecutionStore", "ModelDirectory", "OutcomeStatus"]
