"""Model directory implementations."""

from modelmesh.drivers.model_directory.in_memory import InMemoryModelDirectory, rolling_latency

__all__ = ["InMemoryModelDirectory", "rolling_latency"]
