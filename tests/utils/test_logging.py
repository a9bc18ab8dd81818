"""Tests for structured logging helpers."""

from structlog.contextvars import get_contextvars
from structlog.testing import capture_logs

from indicator_system.utils.logging import (
    extraction_scope,
    get_correlation_id,
    get_structured_logger,
)


class TestExtractionScope:
    def test_binds_and_clears_correlation_id(self):
        with extraction_scope("abc123") as correlation_id:
            assert correlation_id == "abc123"
            assert get_contextvars()["correlation_id"] == "abc123"

        assert "correlation_id" not in get_contextvars()

    def test_correlation_ids_are_unique(self):
        assert get_correlation_id() != get_correlation_id()


class TestStructuredLogger:
    def test_component_and_context_bound(self):
        with capture_logs() as logs:
            logger = get_structured_logger("RetryOrchestrator", source="webhook")
            logger.info("retry_attempt_failed", attempt=1)

        assert logs[0]["event"] == "retry_attempt_failed"
        assert logs[0]["component"] == "RetryOrchestrator"
        assert logs[0]["source"] == "webhook"
        assert logs[0]["attempt"] == 1
