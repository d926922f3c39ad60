"""TOML configuration loader for modelmesh."""

from __future__ import annotations

import os
import re
import tomllib
from pathlib import Path
from typing import Any

from modelmesh.kernel.config.models import (
    InvocationConfig,
    LoggingConfig,
    ModelMeshConfig,
    OrchestratorSettings,
)
from modelmesh.kernel.exceptions import ConfigurationError, ValidationError
from modelmesh.kernel.logging import get_logger

# Type alias for configuration data that can be recursively substituted
ConfigData = str | dict[str, "ConfigData"] | list["ConfigData"] | int | float | bool | None

CONFIG_PATH_ENV = "MODELMESH_CONFIG_PATH"

logger = get_logger(__name__)


def get_default_config() -> ModelMeshConfig:
    """Return the built-in defaults."""
    return ModelMeshConfig()


class ConfigLoader:
    """Loads and processes modelmesh configuration from TOML files."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")

    def load_from_toml(self, path: str | Path | None = None) -> ModelMeshConfig:
        """Load configuration from a TOML file.

        Parameters
        ----------
        path : str | Path | None
            Explicit file. If None, ``MODELMESH_CONFIG_PATH`` is consulted,
            then ``modelmesh.toml`` and ``pyproject.toml`` in the working
            directory. Without any file the defaults are returned.

        Raises
        ------
        ConfigurationError
            If an explicit path does not exist or a section is invalid
        """
        config_path = self._find_config_file(path)
        if config_path is None:
            logger.debug("No configuration file found, using defaults")
            return get_default_config()
        return self._load_and_parse(config_path)

    def _find_config_file(self, path: str | Path | None) -> Path | None:
        if path:
            config_path = Path(path)
            if not config_path.exists():
                raise ConfigurationError(str(config_path), "configuration file not found")
            return config_path

        if env_path := os.getenv(CONFIG_PATH_ENV):
            config_path = Path(env_path)
            if config_path.exists():
                return config_path
            logger.warning(f"{CONFIG_PATH_ENV} set but file not found: {config_path}")

        for candidate in (Path("modelmesh.toml"), Path("pyproject.toml")):
            if candidate.exists():
                return candidate
        return None

    def _load_and_parse(self, config_path: Path) -> ModelMeshConfig:
        logger.info("Loading configuration from {path}", path=config_path)

        try:
            with config_path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(str(config_path), f"invalid TOML: {e}") from e

        if "tool" in data and "modelmesh" in data.get("tool", {}):
            section = data["tool"]["modelmesh"]
        elif config_path.name == "pyproject.toml":
            logger.debug("No [tool.modelmesh] section in pyproject.toml, using defaults")
            return get_default_config()
        else:
            section = data

        section = self._substitute_env_vars(section)
        return self._parse_config(section, str(config_path))

    def _substitute_env_vars(self, data: ConfigData) -> ConfigData:
        """Recursively replace ``${VAR}`` and ``${VAR:default}`` from the environment."""
        if isinstance(data, str):

            def replacer(match: re.Match[str]) -> str:
                var_name, default = match.group(1), match.group(2)
                value = os.environ.get(var_name)
                if value is None:
                    if default is None:
                        raise ConfigurationError(
                            "environment", f"variable '{var_name}' is not set and has no default"
                        )
                    return default
                return value

            return self.ENV_VAR_PATTERN.sub(replacer, data)
        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]
        return data

    def _parse_config(self, data: dict[str, Any], source: str) -> ModelMeshConfig:
        try:
            return ModelMeshConfig(
                logging=LoggingConfig(**data.get("logging", {})),
                invocation=InvocationConfig(**data.get("invocation", {})),
                orchestrator=OrchestratorSettings(**data.get("orchestrator", {})),
            )
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(source, str(e)) from e


def load_config(path: str | Path | None = None) -> ModelMeshConfig:
    """Load configuration (convenience wrapper around :class:`ConfigLoader`)."""
    return ConfigLoader().load_from_toml(path)
