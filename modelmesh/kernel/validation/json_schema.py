"""Validation of JSON values against JSON Schema (draft 2020-12) declarations.

Schemas are checked with :class:`jsonschema.Draft202012Validator`. Keywords
the draft does not define are ignored, so schemas carrying vendor extensions
still load. ``format`` is annotation only, as the draft specifies.

Violations are reported with a JSONPath-like location (``$``, ``$.a``,
``$.items[0]``). A missing required property is reported at the path of the
property itself.

The validator is pure: it never mutates the value or the schema.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema import ValidationError as JsonSchemaError
from jsonschema.exceptions import SchemaError, best_match

from modelmesh.kernel.exceptions import SchemaValidationError

ROOT_PATH = "$"


def format_path(parts: Iterable[str | int], root: str = ROOT_PATH) -> str:
    """Render a sequence of keys and indices as a JSONPath-like string.

    >>> format_path(["stops", 1])
    '$.stops[1]'
    """
    path = root
    for part in parts:
        path += f"[{part}]" if isinstance(part, int) else f".{part}"
    return path


def _missing_property(error: JsonSchemaError) -> str | None:
    if not isinstance(error.instance, Mapping):
        return None
    for name in error.validator_value:
        if name not in error.instance:
            return name
    return None


def _to_violation(error: JsonSchemaError, root: str) -> SchemaValidationError:
    parts: list[str | int] = list(error.absolute_path)
    if error.validator == "required":
        missing = _missing_property(error)
        if missing is not None:
            return SchemaValidationError(
                format_path([*parts, missing], root), "required property is missing"
            )
    return SchemaValidationError(format_path(parts, root), error.message)


def check_schema(schema: Mapping[str, Any]) -> None:
    """Check that ``schema`` is itself a valid draft 2020-12 schema.

    Raises
    ------
    SchemaValidationError
        With the location inside the schema and the reason
    """
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise SchemaValidationError(format_path(e.absolute_path), e.message) from e


def find_violation(
    value: Any, schema: Mapping[str, Any] | None, path: str = ROOT_PATH
) -> SchemaValidationError | None:
    """Return the most relevant schema violation in ``value``, or None.

    Parameters
    ----------
    value : Any
        JSON-like value (dicts, lists, str, numbers, bool, None)
    schema : Mapping[str, Any] | None
        Schema declaration. ``None``, ``{}`` and non-mapping schemas accept
        everything.
    path : str
        Location prefix used in the reported error

    Examples
    --------
    >>> find_violation({"prompt": "hi"}, {"type": "object", "required": ["prompt"]}) is None
    True
    >>> find_violation({}, {"type": "object", "required": ["prompt"]}).path
    '$.prompt'
    """
    if not isinstance(schema, Mapping) or not schema:
        return None

    error = best_match(Draft202012Validator(schema).iter_errors(value))
    if error is None:
        return None
    return _to_violation(error, path)


def validate(value: Any, schema: Mapping[str, Any] | None) -> None:
    """Validate ``value`` against ``schema``.

    Raises
    ------
    SchemaValidationError
        With the path and reason of the most relevant violation
    """
    violation = find_violation(value, schema)
    if violation is not None:
        raise violation


def is_valid(value: Any, schema: Mapping[str, Any] | None) -> bool:
    return find_violation(value, schema) is None
