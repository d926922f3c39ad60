"""Tests for modelmesh.kernel.validation.json_schema."""

import pytest

from modelmesh.kernel.exceptions import SchemaValidationError
from modelmesh.kernel.validation import check_schema, find_violation, is_valid, validate

PROMPT_SCHEMA = {
    "type": "object",
    "required": ["prompt"],
    "properties": {
        "prompt": {"type": "string", "minLength": 1, "maxLength": 20},
        "temperature": {"type": "number", "minimum": 0, "maximum": 2},
        "mode": {"enum": ["fast", "accurate"]},
        "stops": {"type": "array", "items": {"type": "string"}, "maxItems": 2},
    },
}


class TestFindViolation:
    def test_conforming_value(self) -> None:
        value = {"prompt": "hello", "temperature": 0.7, "mode": "fast", "stops": ["\n"]}
        assert find_violation(value, PROMPT_SCHEMA) is None

    def test_missing_required_property_reports_its_path(self) -> None:
        violation = find_violation({"temperature": 1}, PROMPT_SCHEMA)

        assert violation is not None
        assert violation.path == "$.prompt"
        assert "required" in violation.reason

    def test_wrong_root_type(self) -> None:
        violation = find_violation(["prompt"], PROMPT_SCHEMA)

        assert violation is not None
        assert violation.path == "$"
        assert violation.reason == "['prompt'] is not of type 'object'"

    @pytest.mark.parametrize(
        ("value", "path"),
        [
            ({"prompt": ""}, "$.prompt"),
            ({"prompt": "x" * 21}, "$.prompt"),
            ({"prompt": "ok", "temperature": 3}, "$.temperature"),
            ({"prompt": "ok", "temperature": -0.5}, "$.temperature"),
            ({"prompt": "ok", "mode": "slow"}, "$.mode"),
            ({"prompt": "ok", "stops": ["a", "b", "c"]}, "$.stops"),
            ({"prompt": "ok", "stops": ["a", 1]}, "$.stops[1]"),
        ],
    )
    def test_nested_violation_paths(self, value: dict, path: str) -> None:
        violation = find_violation(value, PROMPT_SCHEMA)

        assert violation is not None
        assert violation.path == path

    def test_integer_accepts_integral_floats_but_not_booleans(self) -> None:
        schema = {"type": "integer"}

        assert is_valid(3, schema)
        assert is_valid(3.0, schema)
        assert not is_valid(3.5, schema)
        assert not is_valid(True, schema)

    def test_number_rejects_booleans(self) -> None:
        assert not is_valid(False, {"type": "number"})

    def test_type_list(self) -> None:
        schema = {"type": ["string", "null"]}

        assert is_valid(None, schema)
        assert is_valid("x", schema)
        assert not is_valid(1, schema)

    @pytest.mark.parametrize("schema", [None, {}, "not-a-schema"])
    def test_empty_schema_accepts_anything(self, schema: object) -> None:
        assert find_violation({"anything": [1, 2]}, schema) is None  # type: ignore[arg-type]

    def test_unknown_keywords_are_ignored(self) -> None:
        schema = {"type": "string", "x-widget": "textarea", "format": "email"}
        assert is_valid("not-an-email", schema)

    @pytest.mark.parametrize(
        ("value", "options"),
        [(True, [1]), (1, [True]), (False, [0]), (0, [False])],
    )
    def test_enum_keeps_booleans_and_numbers_apart(self, value: object, options: list) -> None:
        violation = find_violation(value, {"enum": options})

        assert violation is not None
        assert violation.path == "$"

    def test_enum_matches_integral_float(self) -> None:
        assert is_valid(1.0, {"enum": [1]})

    def test_validator_does_not_mutate_inputs(self) -> None:
        value = {"prompt": "hi", "stops": ["a"]}
        schema = {"type": "object", "properties": {"stops": {"type": "array"}}}

        find_violation(value, schema)

        assert value == {"prompt": "hi", "stops": ["a"]}
        assert schema == {"type": "object", "properties": {"stops": {"type": "array"}}}


def test_validate_raises_schema_validation_error() -> None:
    with pytest.raises(SchemaValidationError) as exc_info:
        validate({}, PROMPT_SCHEMA)

    assert exc_info.value.path == "$.prompt"
    assert str(exc_info.value).startswith("$.prompt:")


class TestCheckSchema:
    def test_valid_schema(self) -> None:
        check_schema(PROMPT_SCHEMA)

    def test_unknown_type_name(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            check_schema({"type": "text"})

        assert exc_info.value.path.startswith("$")
