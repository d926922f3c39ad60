"""Execution store implementations."""

from modelmesh.drivers.execution_store.in_memory import InMemoryExecutionStore
from modelmesh.drivers.execution_store.jsonl import JsonlExecutionStore

__all__ = ["InMemoryExecutionStore", "JsonlExecutionStore"]
