"""Tests for structured logging and metrics."""

import json
import logging

import pytest

from commentguard.utils.logging_config import (
    JSONFormatter,
    MetricsCollector,
    metrics,
    request_id_var,
    track_moderation,
)


class TestJSONFormatter:
    def test_formats_record_with_context(self):
        record = logging.LogRecord("commentguard.test", logging.INFO, __file__, 10, "Comment moderated", (), None)
        record.extra_data = {"action": "spam"}

        token = request_id_var.set("req-1")
        try:
            data = json.loads(JSONFormatter().format(record))
        finally:
            request_id_var.reset(token)

        assert data["message"] == "Comment moderated"
        assert data["level"] == "INFO"
        assert data["request_id"] == "req-1"
        assert data["data"] == {"action": "spam"}


class TestMetricsCollector:
    def test_counters_and_timings(self):
        collector = MetricsCollector()
        collector.increment("moderation.total")
        collector.increment("moderation.total")
        collector.timing("provider.openai.latency", 0.2)
        collector.timing("provider.openai.latency", 0.4)

        stats = collector.get_stats()
        assert stats["counters"]["moderation.total"] == 2
        assert stats["timings"]["provider.openai.latency"]["count"] == 2
        assert stats["timings"]["provider.openai.latency"]["max"] == 0.4

    def test_track_moderation_counts_errors(self):
        metrics.reset()

        @track_moderation
        def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            failing()

        counters = metrics.get_stats()["counters"]
        assert counters["moderation.total"] == 1
        assert counters["moderation.errors"] == 1
