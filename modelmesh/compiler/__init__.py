"""Loading of model catalogs and pipeline definitions from YAML."""

from modelmesh.compiler.yaml_loader import (
    load_models,
    load_pipeline,
    parse_models,
    parse_pipeline,
    resolve_env_vars,
)

__all__ = ["load_models", "load_pipeline", "parse_models", "parse_pipeline", "resolve_env_vars"]
