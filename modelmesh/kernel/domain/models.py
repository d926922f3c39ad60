"""Model metadata: identity and contract of an invocable remote model."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, JsonValue, SecretStr, field_validator

from modelmesh.kernel.exceptions import SchemaValidationError
from modelmesh.kernel.validation.json_schema import check_schema


class ModelStatus(StrEnum):
    """Lifecycle status of a registered model."""

    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"


class SecurityPolicy(StrEnum):
    """Who may discover and call a model."""

    PUBLIC = "public"
    ORG_ONLY = "org-only"
    PRIVATE = "private"


class ModelType(StrEnum):
    """Broad capability family of a model, used for discovery and metering."""

    LLM = "llm"
    VISION = "vision"
    TABULAR = "tabular"
    AUDIO = "audio"
    EMBEDDING = "embedding"
    CUSTOM = "custom"


def new_model_id() -> str:
    """Generate a fresh model identifier."""
    return f"model_{uuid.uuid4().hex[:12]}"


def utc_now() -> datetime:
    return datetime.now(UTC)


class ModelMetadata(BaseModel):
    """Immutable description of a remote model endpoint.

    Only ``status``, ``latency_ms`` and ``last_checked`` change over a model's
    life, and only as the outcome of an invocation or a health probe. Changes
    are made by copying (``model_copy(update=...)``); the identifier is never
    rewritten.

    Attributes
    ----------
    id : str
        Unique identifier, immutable once assigned
    name : str
        Display name
    endpoint : str
        HTTP endpoint receiving ``POST`` requests with a JSON body
    input_schema / output_schema : dict
        JSON-Schema-like declarations checked before and after each call
    latency_ms : int
        Rolling latency estimate in milliseconds
    cost_per_unit : float | None
        Price of one output unit (usually a token); ``None`` when unknown
    credential : SecretStr | None
        Sent as a bearer token when present
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=new_model_id, min_length=1)
    name: str
    endpoint: str
    input_schema: dict[str, JsonValue] = Field(default_factory=dict)
    output_schema: dict[str, JsonValue] = Field(default_factory=dict)
    latency_ms: int = Field(default=1000, ge=0)
    cost_per_unit: float | None = Field(default=None, ge=0)
    security_policy: SecurityPolicy = SecurityPolicy.PUBLIC
    credential: SecretStr | None = None
    status: ModelStatus = ModelStatus.OFFLINE
    health_check_url: str | None = None
    tags: frozenset[str] = Field(default_factory=frozenset)
    model_type: ModelType = ModelType.CUSTOM
    owner: str | None = None
    description: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    last_checked: datetime | None = None

    @field_validator("endpoint", "health_check_url")
    @classmethod
    def _check_http_url(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value

    @field_validator("input_schema", "output_schema")
    @classmethod
    def _check_schema(cls, value: dict[str, JsonValue]) -> dict[str, JsonValue]:
        try:
            check_schema(value)
        except SchemaValidationError as e:
            raise ValueError(f"invalid JSON Schema at {e.path}: {e.reason}") from e
        return value

    def bearer_token(self) -> str | None:
        """Return the plain credential, or None when the model is unauthenticated."""
        if self.credential is None:
            return None
        return self.credential.get_secret_value() or None

    def __repr__(self) -> str:
        return (
            f"ModelMetadata(id={self.id!r}, name={self.name!r}, "
            f"status={self.status.value}, latency_ms={self.latency_ms})"
        )
