"""
Tests for structured logging.
"""

import json
import logging

import pytest

from surveychain.shared.logging import (
    StructuredFormatter,
    correlation_id_var,
    get_logger,
    setup_logging,
)


def _record(message: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="surveychain.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_formats_as_json(self) -> None:
        output = json.loads(StructuredFormatter().format(_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "surveychain.test"
        assert output["message"] == "hello"
        assert "timestamp" in output

    def test_includes_extra_fields(self) -> None:
        output = json.loads(StructuredFormatter().format(_record(survey_id=3, tx_hash="0xabc")))

        assert output["survey_id"] == 3
        assert output["tx_hash"] == "0xabc"

    def test_extra_cannot_overwrite_core_fields(self) -> None:
        output = json.loads(StructuredFormatter().format(_record(level="bogus")))

        assert output["level"] == "INFO"
        assert output["extra_level"] == "bogus"

    def test_includes_correlation_id(self) -> None:
        token = correlation_id_var.set("run-123")
        try:
            output = json.loads(StructuredFormatter().format(_record()))
        finally:
            correlation_id_var.reset(token)

        assert output["correlation_id"] == "run-123"

    def test_omits_missing_correlation_id(self) -> None:
        output = json.loads(StructuredFormatter().format(_record()))
        assert "correlation_id" not in output


class TestGetLogger:
    def test_single_handler(self) -> None:
        first = get_logger("surveychain.test.handlers")
        second = get_logger("surveychain.test.handlers")

        assert first is second
        assert len(first.handlers) == 1
        assert isinstance(first.handlers[0].formatter, StructuredFormatter)

    def test_call_site_extra(self, capsys) -> None:
        logger = get_logger("surveychain.test.context")

        logger.info("with context", extra={"survey_id": 9})

        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["message"] == "with context"
        assert payload["survey_id"] == 9


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_root_uses_json(self) -> None:
        root = setup_logging("debug")

        assert root is logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_quiets_client_libraries(self) -> None:
        setup_logging()

        assert logging.getLogger("web3").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING
