"""Configuration loading and models."""

from modelmesh.kernel.config.loader import ConfigLoader, get_default_config, load_config
from modelmesh.kernel.config.models import (
    InvocationConfig,
    LoggingConfig,
    ModelMeshConfig,
    OrchestratorSettings,
)

__all__ = [
    "ConfigLoader",
    "InvocationConfig",
    "LoggingConfig",
    "ModelMeshConfig",
    "OrchestratorSettings",
    "get_default_config",
    "load_config",
]
