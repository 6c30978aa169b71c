"""Tests for ErrorCollector."""

import pytest

from dirsync_api.sync.error_collector import DEFAULT_SAMPLE_SIZE
from dirsync_api.sync.error_collector import ErrorCollector


class TestErrorCollector:
    """Tests for bounded error accumulation."""

    def test_empty_collector_is_falsy(self):
        collector = ErrorCollector()

        assert not collector
        assert collector.count == 0
        assert collector.messages == []

    def test_message_carries_email_and_error(self):
        """Messages identify the failing user."""
        collector = ErrorCollector()

        message = collector.record("jane@example.com", RuntimeError("unique violation"))

        assert message == "Failed to sync employee jane@example.com: unique violation"
        assert collector.messages == [message]

    def test_keeps_first_messages_and_counts_all(self):
        """Only the first sample_size messages are retained, every failure is counted."""
        collector = ErrorCollector()

        for index in range(8):
            collector.record(f"user{index}@example.com", ValueError("boom"))

        assert collector.count == 8
        assert len(collector.messages) == DEFAULT_SAMPLE_SIZE
        assert collector.dropped == 3
        assert "user0@example.com" in collector.messages[0]
        assert "user4@example.com" in collector.messages[-1]

    def test_zero_sample_size_counts_without_messages(self):
        collector = ErrorCollector(sample_size=0)

        collector.record("a@example.com", ValueError("boom"))

        assert collector.count == 1
        assert collector.messages == []

    def test_negative_sample_size_rejected(self):
        with pytest.raises(ValueError):
            ErrorCollector(sample_size=-1)

    def test_messages_returns_copy(self):
        collector = ErrorCollector()
        collector.record("a@example.com", ValueError("boom"))

        collector.messages.append("tampered")

        assert len(collector.messages) == 1

    def test_error_with_braces_is_logged(self, log_records):
        """Error text is not treated as a format string."""
        collector = ErrorCollector()

        collector.record("a@example.com", ValueError("bad payload {'id': 1}"))

        assert any("{'id': 1}" in record["message"] for record in log_records)
