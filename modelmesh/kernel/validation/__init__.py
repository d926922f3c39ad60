"""Schema validation for model payloads."""

from modelmesh.kernel.validation.json_schema import (
    check_schema,
    find_violation,
    is_valid,
    validate,
)

__all__ = ["check_schema", "find_violation", "is_valid", "validate"]
