"""YAML loading of model catalogs and pipeline definitions.

Catalog file::

    models:
      - id: sentiment
        name: Sentiment classifier
        endpoint: https://models.example.com/sentiment
        credential: ${SENTIMENT_TOKEN}
        model_type: tabular
        input_schema:
          type: object
          required: [text]

Pipeline file::

    id: review-triage
    name: Review triage
    nodes:
      - id: classify
        model_id: sentiment
      - id: summarize
        model_id: summarizer
        depends_on: [classify]
        config:
          timeout_ms: 5000
    edges:
      - source: classify
        target: route
        source_port: label

``${VAR}`` and ``${VAR:default}`` are resolved from the environment before
validation, so credentials never need to be written into the files.
``depends_on`` is shorthand for port-less edges.
"""

from __future__ import annotations

import os
import re
from contextlib import suppress
from functools import singledispatch
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from modelmesh.kernel.domain.models import ModelMetadata
from modelmesh.kernel.domain.pipeline import PipelineEdge, PipelineGraph, PipelineNode
from modelmesh.kernel.exceptions import ConfigurationError
from modelmesh.kernel.logging import get_logger

logger = get_logger(__name__)

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::([^}]*))?\}")

# Values that must stay strings even when the variable holds digits
_STRING_KEYS = frozenset({"credential", "id", "model_id", "name", "source", "target"})


@singledispatch
def resolve_env_vars(obj: Any, source: str = "<yaml>") -> Any:
    """Recursively resolve ``${VAR}`` / ``${VAR:default}`` in any structure.

    A string consisting of exactly one placeholder is coerced to ``int``,
    ``float`` or ``bool`` when the resolved text looks like one.

    Raises
    ------
    ConfigurationError
        If a variable is unset and has no default
    """
    return obj


@resolve_env_vars.register(str)
def _resolve_str(obj: str, source: str = "<yaml>") -> Any:
    def replacer(match: re.Match[str]) -> str:
        var_name, default = match.group(1), match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is None:
            if default is not None:
                return default
            raise ConfigurationError(
                source,
                f"environment variable '${{{var_name}}}' is not set and has no default. "
                f"Use ${{{var_name}:default_value}} or set the variable.",
            )
        return env_value

    resolved = ENV_VAR_PATTERN.sub(replacer, obj)
    if resolved == obj or not ENV_VAR_PATTERN.fullmatch(obj):
        return resolved

    if resolved.lower() in ("true", "false"):
        return resolved.lower() == "true"
    with suppress(ValueError):
        return int(resolved)
    with suppress(ValueError):
        return float(resolved)
    return resolved


@resolve_env_vars.register(dict)
def _resolve_dict(obj: dict, source: str = "<yaml>") -> dict[str, Any]:
    resolved = {}
    for key, value in obj.items():
        value = resolve_env_vars(value, source)
        if key in _STRING_KEYS and isinstance(value, int | float):
            value = str(value)
        resolved[key] = value
    return resolved


@resolve_env_vars.register(list)
def _resolve_list(obj: list, source: str = "<yaml>") -> list[Any]:
    return [resolve_env_vars(item, source) for item in obj]


def _read_yaml(path: str | Path) -> Any:
    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(str(file_path), "file not found")
    try:
        with file_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(str(file_path), f"invalid YAML: {e}") from e
    return resolve_env_vars(data, str(file_path))


def _format_errors(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def parse_models(data: Any, source: str = "<catalog>") -> list[ModelMetadata]:
    """Build model metadata from an already-parsed catalog document."""
    if not isinstance(data, dict) or not isinstance(data.get("models"), list):
        raise ConfigurationError(source, "expected a mapping with a 'models' list")

    models: list[ModelMetadata] = []
    seen: set[str] = set()
    for index, entry in enumerate(data["models"]):
        if not isinstance(entry, dict):
            raise ConfigurationError(source, f"models[{index}] must be a mapping")
        try:
            model = ModelMetadata.model_validate(entry)
        except PydanticValidationError as e:
            raise ConfigurationError(source, f"models[{index}]: {_format_errors(e)}") from e
        if model.id in seen:
            raise ConfigurationError(source, f"duplicate model id '{model.id}'")
        seen.add(model.id)
        models.append(model)
    return models


def parse_pipeline(data: Any, source: str = "<pipeline>") -> PipelineGraph:
    """Build a pipeline graph from an already-parsed pipeline document.

    Structural problems (cycles, dangling edges, duplicate node ids) are not
    checked here; they surface when the graph is resolved.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(source, "pipeline document must be a mapping")
    nodes_data = data.get("nodes")
    if not isinstance(nodes_data, list):
        raise ConfigurationError(source, "'nodes' must be a list")
    edges_data = data.get("edges") or []
    if not isinstance(edges_data, list):
        raise ConfigurationError(source, "'edges' must be a list")

    edges: list[Any] = list(edges_data)
    nodes: list[Any] = []
    for index, node in enumerate(nodes_data):
        if not isinstance(node, dict):
            raise ConfigurationError(source, f"nodes[{index}] must be a mapping")
        node = dict(node)
        depends_on = node.pop("depends_on", None) or []
        if isinstance(depends_on, str):
            depends_on = [depends_on]
        edges.extend({"source": dep, "target": node.get("id")} for dep in depends_on)
        nodes.append(node)

    document = {key: value for key, value in data.items() if key not in ("nodes", "edges")}
    try:
        return PipelineGraph.model_validate({
            **document,
            "nodes": [PipelineNode.model_validate(node) for node in nodes],
            "edges": [PipelineEdge.model_validate(edge) for edge in edges],
        })
    except PydanticValidationError as e:
        raise ConfigurationError(source, _format_errors(e)) from e


def load_models(path: str | Path) -> list[ModelMetadata]:
    """Load a model catalog file.

    Raises
    ------
    ConfigurationError
        If the file is missing, is not valid YAML or holds invalid entries
    """
    models = parse_models(_read_yaml(path), str(path))
    logger.debug("Loaded {count} model(s) from {path}", count=len(models), path=str(path))
    return models


def load_pipeline(path: str | Path) -> PipelineGraph:
    """Load a pipeline definition file.

    Raises
    ------
    ConfigurationError
        If the file is missing, is not valid YAML or is not a pipeline
    """
    graph = parse_pipeline(_read_yaml(path), str(path))
    logger.debug(
        "Loaded pipeline '{pipeline}' ({count} node(s)) from {path}",
        pipeline=graph.id,
        count=len(graph.nodes),
        path=str(path),
    )
    return graph
