"""Configuration data models for modelmesh."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from modelmesh.kernel.exceptions import ValidationError

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_BASE_MS = 500.0
DEFAULT_MAX_CONCURRENT_NODES = 10


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration.

    Examples
    --------
    TOML configuration:

    ```toml
    [tool.modelmesh.logging]
    level = "DEBUG"
    format = "rich"
    ```

    Environment variable overrides::

        export MODELMESH_LOG_LEVEL=DEBUG
        export MODELMESH_LOG_FORMAT=json
    """

    level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True


@dataclass(frozen=True, slots=True)
class InvocationConfig:
    """Default invocation policy applied to every model call.

    Attributes
    ----------
    timeout_ms : float
        Per-attempt timeout
    max_retries : int
        Retries after the first attempt for timeouts and upstream errors
    backoff_base_ms : float
        Delay before retry ``n`` (0-based) is ``backoff_base_ms * 2**n``
    """

    timeout_ms: float = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_base_ms: float = DEFAULT_BACKOFF_BASE_MS

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValidationError("timeout_ms", "must be positive", self.timeout_ms)
        if self.max_retries < 0:
            raise ValidationError("max_retries", "must be >= 0", self.max_retries)
        if self.backoff_base_ms < 0:
            raise ValidationError("backoff_base_ms", "must be >= 0", self.backoff_base_ms)


@dataclass(frozen=True, slots=True)
class OrchestratorSettings:
    """Pipeline-level execution settings.

    Attributes
    ----------
    max_concurrent_nodes : int
        Upper bound on calls in flight within one level
    deadline_ms : float | None
        Default pipeline deadline, checked before each level
    """

    max_concurrent_nodes: int = DEFAULT_MAX_CONCURRENT_NODES
    deadline_ms: float | None = None

    def __post_init__(self) -> None:
        if self.max_concurrent_nodes < 1:
            raise ValidationError(
                "max_concurrent_nodes", "must be >= 1", self.max_concurrent_nodes
            )
        if self.deadline_ms is not None and self.deadline_ms <= 0:
            raise ValidationError("deadline_ms", "must be positive", self.deadline_ms)


@dataclass(frozen=True, slots=True)
class ModelMeshConfig:
    """Root configuration object."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    invocation: InvocationConfig = field(default_factory=InvocationConfig)
    orchestrator: OrchestratorSettings = field(default_factory=OrchestratorSettings)
