"""Concrete adapters for the orchestration ports."""

from modelmesh.drivers.execution_store import InMemoryExecutionStore, JsonlExecutionStore
from modelmesh.drivers.http_client import HttpClientDriver
from modelmesh.drivers.model_directory import InMemoryModelDirectory

__all__ = [
    "HttpClientDriver",
    "InMemoryExecutionStore",
    "InMemoryModelDirectory",
    "JsonlExecutionStore",
]
