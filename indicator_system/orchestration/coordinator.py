"""Concurrent two-source extraction feeding the cross-validator.

Both extraction operations start together and the coordinator waits for both
to settle before reconciling. A failure in one source never aborts or delays
collection from the other; partial failure is the normal degraded path and
ends up as SINGLE_SOURCE, not as an exception.

The coordinator does not retry. Operations arrive already wrapped by the
RetryOrchestrator where the pipeline wants retries.

Usage:
    from indicator_system.orchestration.coordinator import DualSourceCoordinator

    coordinator = DualSourceCoordinator(
        webhook_operation=retry.wrap(page_source.extract, 3),
        telegram_operation=channel_source.extract,
    )
    result = await coordinator.extract_dual()
"""

import asyncio
import time
from typing import Any, Optional

from indicator_system.agents.validators.cross_validator import CrossValidator
from indicator_system.data_management.schemas import (
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
    PublishedResult,
    SourceName,
)
from indicator_system.orchestration.retry import ExtractionOperation
from indicator_system.utils.logging import (
    extraction_scope,
    get_correlation_id,
    get_structured_logger,
)


def normalize_outcome(result: Any, source: SourceName) -> ExtractionOutcome:
    """Turn one settled gather result into an ExtractionOutcome.

    Raised exceptions and values of an unexpected type become
    ExtractionFailure so reconciliation only ever sees the tagged union.
    """
    if isinstance(result, (ExtractionSuccess, ExtractionFailure)):
        return result

    if isinstance(result, BaseException):
        message = str(result) or type(result).__name__
        return ExtractionFailure(error=message)

    return ExtractionFailure(
        error=f"{source.value.capitalize()} extraction failed: "
        f"unexpected result type {type(result).__name__}"
    )


class DualSourceCoordinator:
    """Runs both source operations concurrently and reconciles their outcomes."""

    def __init__(
        self,
        webhook_operation: ExtractionOperation,
        telegram_operation: ExtractionOperation,
        validator: Optional[CrossValidator] = None,
    ) -> None:
        """Initialize DualSourceCoordinator.

        Args:
            webhook_operation: Zero-argument coroutine function for the primary source.
            telegram_operation: Zero-argument coroutine function for the secondary source.
            validator: Cross-validation engine. Created with default thresholds if None.
        """
        self._webhook_operation = webhook_operation
        self._telegram_operation = telegram_operation
        self._validator = validator or CrossValidator()
        self._logger = get_structured_logger("DualSourceCoordinator")

    async def collect(self) -> tuple[ExtractionOutcome, ExtractionOutcome, int]:
        """Run both operations and return their outcomes and wall-clock ms."""
        start = time.perf_counter()

        webhook_result, telegram_result = await asyncio.gather(
            self._webhook_operation(),
            self._telegram_operation(),
            return_exceptions=True,
        )
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        return (
            normalize_outcome(webhook_result, SourceName.WEBHOOK),
            normalize_outcome(telegram_result, SourceName.TELEGRAM),
            elapsed_ms,
        )

    async def extract_dual(self) -> PublishedResult:
        """Extract from both sources and publish the reconciled result.

        ``metadata.extraction_time_ms`` is the time until both operations
        settled, not the sum of the per-source times.
        """
        start = time.perf_counter()

        with extraction_scope(get_correlation_id()) as correlation_id:
            self._logger.info("dual_extraction_started")
            webhook, telegram, extraction_ms = await self.collect()

            result = self._validator.reconcile(
                webhook, telegram, correlation_id=correlation_id
            )
            result.metadata["extraction_time_ms"] = extraction_ms
            result.metadata["total_request_time_ms"] = int(
                (time.perf_counter() - start) * 1000
            )
            result.metadata["correlation_id"] = correlation_id

            self._logger.info(
                "dual_extraction_completed",
                validation_status=result.validation.status.value,
                sources_used=result.validation.sources_used,
                extraction_time_ms=extraction_ms,
            )
        return result
