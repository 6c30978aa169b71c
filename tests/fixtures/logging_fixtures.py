"""Fixtures for capturing loguru output."""

import pytest
from loguru import logger


@pytest.fixture
def log_records():
    """Collect loguru records emitted during the test (level name, message, extra)."""
    records = []

    def sink(message):
        record = message.record
        records.append(
            {
                "level": record["level"].name,
                "message": record["message"],
                "extra": dict(record["extra"]),
                "exception": record["exception"],
            }
        )

    handler_id = logger.add(sink, level="DEBUG", format="{message}")
    yield records
    logger.remove(handler_id)
