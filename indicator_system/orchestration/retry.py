"""Bounded retries with linear backoff around a single-source extraction.

Attempts against one source run strictly one after another. A failed
attempt, whether it returned ExtractionFailure or raised, is followed by a
sleep of ``base_delay * attempt_number`` before the next one (2s, 4s, ... with
the default delay). Once ``max_attempts`` are spent the orchestrator returns a
terminal ExtractionFailure that carries the last error and the static
fallback reading, so callers always have something to show.

Every attempt and the terminal outcome are reported to observers and logged;
observers cannot change the returned outcome.

Usage:
    from indicator_system.orchestration.retry import RetryOrchestrator

    retry = RetryOrchestrator(base_delay_ms=2000)
    outcome = await retry.run(page_source.extract, max_attempts=3)
"""

import asyncio
import functools
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_incrementing,
)

from indicator_system.config.sources import FALLBACK_READING
from indicator_system.data_management.schemas import (
    ExtractionFailure,
    ExtractionOutcome,
    IndicatorReading,
)
from indicator_system.utils.logging import get_structured_logger

ExtractionOperation = Callable[[], Awaitable[ExtractionOutcome]]


@dataclass
class RetryState:
    """Progress of one ``run`` invocation."""

    max_attempts: int
    attempt: int = 0
    last_error: Optional[str] = None


@dataclass(frozen=True)
class AttemptRecord:
    """Observation emitted after each attempt and once at the end.

    ``terminal`` is False for per-attempt records and True for the single
    record describing the outcome ``run`` returns.
    """

    name: str
    attempt: int
    max_attempts: int
    outcome: ExtractionOutcome
    terminal: bool


RetryObserver = Callable[[AttemptRecord], None]


class RetryOrchestrator:
    """Linear-backoff retry wrapper producing a guaranteed terminal outcome.

    Attributes:
        base_delay_ms: Delay unit; attempt N is followed by N * base_delay_ms.
        fallback_reading: Reading attached to the terminal failure.
        name: Label used in logs and attempt records.
    """

    def __init__(
        self,
        base_delay_ms: int = 2000,
        fallback_reading: Optional[IndicatorReading] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        observers: Optional[list[RetryObserver]] = None,
        name: str = "extraction",
    ) -> None:
        """Initialize RetryOrchestrator.

        Args:
            base_delay_ms: Linear backoff unit in milliseconds.
            fallback_reading: Static last-known-good reading. Defaults to
                the bundled FALLBACK_READING.
            sleep: Coroutine used for backoff sleeps (seconds). Defaults to
                asyncio.sleep.
            observers: Callables notified with every AttemptRecord.
            name: Label for logs, usually the source name.
        """
        if base_delay_ms < 0:
            raise ValueError(f"base_delay_ms must be >= 0, got {base_delay_ms}")

        self.base_delay_ms = base_delay_ms
        self.fallback_reading = fallback_reading or FALLBACK_READING
        self.name = name
        self._sleep = sleep or asyncio.sleep
        self._observers: list[RetryObserver] = list(observers or [])
        self._logger = get_structured_logger("RetryOrchestrator", source=name)

    def add_observer(self, observer: RetryObserver) -> None:
        self._observers.append(observer)

    async def run(
        self,
        operation: ExtractionOperation,
        max_attempts: int = 3,
    ) -> ExtractionOutcome:
        """Run operation until it succeeds or max_attempts are spent.

        Args:
            operation: Zero-argument coroutine function producing one outcome.
            max_attempts: Upper bound on attempts (>= 1).

        Returns:
            The first ExtractionSuccess, or a terminal ExtractionFailure with
            fallback_data and attempts set.

        Raises:
            ValueError: If max_attempts is lower than 1.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        state = RetryState(max_attempts=max_attempts)
        delay_s = self.base_delay_ms / 1000.0

        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(max_attempts),
            wait=wait_incrementing(start=delay_s, increment=delay_s),
            retry=retry_if_result(lambda outcome: not outcome.success),
            before_sleep=self._log_backoff,
            retry_error_callback=functools.partial(self._exhausted, state),
        )

        outcome = await retrying(self._attempt, operation, state)

        if outcome.success:
            self._emit(state, outcome, terminal=True)
        return outcome

    def wrap(
        self,
        operation: ExtractionOperation,
        max_attempts: int = 3,
    ) -> ExtractionOperation:
        """Return a zero-argument coroutine function running ``run`` on operation."""

        async def retry_wrapped() -> ExtractionOutcome:
            return await self.run(operation, max_attempts)

        return retry_wrapped

    async def _attempt(
        self,
        operation: ExtractionOperation,
        state: RetryState,
    ) -> ExtractionOutcome:
        """Run one attempt, turning a raised error into ExtractionFailure."""
        state.attempt += 1
        self._logger.info(
            "extraction_attempt",
            attempt=state.attempt,
            max_attempts=state.max_attempts,
        )

        try:
            outcome = await operation()
        except Exception as e:
            self._logger.error(
                "extraction_attempt_exception",
                attempt=state.attempt,
                error=str(e),
                error_type=type(e).__name__,
            )
            outcome = ExtractionFailure(error=str(e) or type(e).__name__)

        if not outcome.success:
            state.last_error = outcome.error

        self._emit(state, outcome, terminal=False)
        return outcome

    def _log_backoff(self, retry_state: RetryCallState) -> None:
        backoff = retry_state.next_action.sleep if retry_state.next_action else 0.0
        self._logger.warning(
            "attempt_failed_retrying",
            attempt=retry_state.attempt_number,
            backoff_ms=int(backoff * 1000),
        )

    def _exhausted(
        self,
        state: RetryState,
        retry_state: RetryCallState,
    ) -> ExtractionFailure:
        """Build the terminal failure once every attempt is spent."""
        failure = ExtractionFailure(
            error=state.last_error or "All retry attempts failed",
            fallback_data=self.fallback_reading,
            attempts=retry_state.attempt_number,
        )
        self._logger.error(
            "all_retry_attempts_exhausted",
            max_attempts=state.max_attempts,
            last_error=state.last_error,
        )
        self._emit(state, failure, terminal=True)
        return failure

    def _emit(
        self,
        state: RetryState,
        outcome: ExtractionOutcome,
        terminal: bool,
    ) -> None:
        record = AttemptRecord(
            name=self.name,
            attempt=state.attempt,
            max_attempts=state.max_attempts,
            outcome=outcome,
            terminal=terminal,
        )
        for observer in self._observers:
            try:
                observer(record)
            except Exception as e:
                self._logger.warning(
                    "retry_observer_failed",
                    observer=getattr(observer, "__name__", repr(observer)),
                    error=str(e),
                )
