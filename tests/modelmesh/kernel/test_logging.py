"""Tests for modelmesh.kernel.logging."""

import json

import pytest
from loguru import logger

from modelmesh.kernel.logging import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    reset_correlation_id,
    set_correlation_id,
)


@pytest.fixture
def captured():
    configure_logging(level="DEBUG", format="console", force_reconfigure=True)
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{extra[cid]} {message}")
    yield messages
    logger.remove(handler_id)
    clear_correlation_id()


class TestCorrelationId:
    def test_default_is_dash(self) -> None:
        clear_correlation_id()
        assert get_correlation_id() == "-"

    def test_set_and_reset(self) -> None:
        clear_correlation_id()
        token = set_correlation_id("exec_abc")
        assert get_correlation_id() == "exec_abc"

        reset_correlation_id(token)
        assert get_correlation_id() == "-"

    def test_injected_into_records(self, captured: list[str]) -> None:
        log = get_logger("tests.logging")

        token = set_correlation_id("exec_123")
        log.info("inside run")
        reset_correlation_id(token)
        log.info("outside run")

        assert captured[0].strip() == "exec_123 inside run"
        assert captured[1].strip() == "- outside run"


class TestConfigureLogging:
    def test_json_file_output(self, tmp_path) -> None:
        output = tmp_path / "logs" / "modelmesh.jsonl"
        configure_logging(
            level="INFO", format="console", output_file=output, force_reconfigure=True
        )
        try:
            get_logger("tests.logging").info("written to file")
        finally:
            # Releases the file sink
            configure_logging(level="WARNING", format="console", force_reconfigure=True)

        lines = output.read_text().splitlines()
        entry = json.loads(lines[-1])
        assert entry["record"]["message"] == "written to file"
        assert entry["record"]["extra"]["module"] == "tests.logging"

    def test_level_filters_messages(self, captured: list[str]) -> None:
        configure_logging(level="WARNING", format="console", force_reconfigure=True)
        log = get_logger("tests.logging")

        log.debug("hidden from stderr")

        # The extra handler keeps its own level
        assert any("hidden from stderr" in message for message in captured)
