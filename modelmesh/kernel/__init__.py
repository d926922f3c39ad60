"""Kernel: domain objects, ports, validation and the orchestration core."""
