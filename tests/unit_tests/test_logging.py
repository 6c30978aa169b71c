"""Test suite for logger configuration."""

import json
import sys
from unittest.mock import MagicMock

import pytest
from loguru import logger

from dirsync_api.monitoring.logger import add_stacktrace
from dirsync_api.monitoring.logger import configure_logger
from dirsync_api.monitoring.logger import get_formatted_stacktrace
from dirsync_api.monitoring.logger import log_response_info
from dirsync_api.monitoring.logger import process_log_record


def exception_info():
    try:
        raise ValueError("boom")
    except ValueError:
        return sys.exc_info()


class TestProcessLogRecord:
    """Tests for the stdout sink filter."""

    def test_extra_serialized_to_json(self):
        record = {"extra": {"integration_id": "int-1", "batch_number": 2}, "exception": None}

        result = process_log_record(record)

        assert json.loads(result["serialized_extra"]) == {"integration_id": "int-1", "batch_number": 2}
        assert result["extra"] == {"integration_id": "int-1", "batch_number": 2}
        assert result["stacktrace"] == ""

    def test_empty_extra(self):
        result = process_log_record({"extra": {}, "exception": None})

        assert result["serialized_extra"] == ""

    def test_non_json_values_stringified(self):
        marker = object()

        result = process_log_record({"extra": {"value": marker}, "exception": None})

        assert json.loads(result["serialized_extra"]) == {"value": str(marker)}


class TestStacktrace:
    def test_stacktrace_on_single_line(self):
        record = add_stacktrace({"exception": exception_info()})

        assert "ValueError: boom" in record["stacktrace"]
        assert "\n" not in record["stacktrace"]
        assert "\r" in record["stacktrace"]

    def test_keep_newlines(self):
        stacktrace = get_formatted_stacktrace(
            exception_info(), replace_newline_character_with_carriage_return=False
        )

        assert "\n" in stacktrace


class TestConfigureLogger:
    @pytest.fixture(autouse=True)
    def restore_logger(self):
        yield
        configure_logger()

    def test_writes_one_line_per_event(self, capsys):
        configure_logger(level="INFO")

        logger.info("Batch completed", integration_id="int-1")
        logger.debug("not shown")

        output = capsys.readouterr().out.strip().splitlines()
        assert len(output) == 1
        assert "Batch completed" in output[0]
        assert '{"integration_id": "int-1"}' in output[0]

    def test_exception_stacktrace_rendered(self, capsys):
        configure_logger(level="INFO")

        try:
            raise RuntimeError("queue unavailable")
        except RuntimeError:
            logger.exception("Queue consumer error")

        output = capsys.readouterr().out
        assert "Queue consumer error" in output
        assert "RuntimeError: queue unavailable" in output


def test_log_response_info(log_records):
    response = MagicMock()
    response.status_code = 404
    response.headers = {"content-type": "application/json"}

    log_response_info(response)

    [record] = [record for record in log_records if record["message"] == "Response sent"]
    assert record["extra"]["http_response"]["status_code"] == 404
