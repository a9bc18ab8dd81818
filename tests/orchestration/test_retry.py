"""Tests for RetryOrchestrator linear backoff, exhaustion and observers."""

import pytest

from indicator_system.config.sources import FALLBACK_READING
from indicator_system.data_management.schemas import (
    ExtractionFailure,
    ExtractionSuccess,
    IndicatorReading,
    ReadingSource,
)
from indicator_system.orchestration.retry import RetryOrchestrator


# ── Fixtures ──────────────────────────────────────────────────────────


def recording_sleep():
    """Stand-in for asyncio.sleep recording requested delays on ``.delays``."""
    delays: list[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


class ScriptedOperation:
    """Returns (or raises) scripted outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        outcome = self.outcomes[self.calls]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _success():
    return ExtractionSuccess(
        data=IndicatorReading(
            participants=2_110_192,
            revenues=752_040_501,
            liquidity=30_463_309,
            source=ReadingSource.WEBHOOK,
        ),
        extraction_time_ms=50,
    )


@pytest.fixture
def sleep():
    return recording_sleep()


@pytest.fixture
def orchestrator(sleep):
    return RetryOrchestrator(base_delay_ms=2000, sleep=sleep, name="webhook")


# ── Tests ─────────────────────────────────────────────────────────────


class TestRetrySuccess:
    @pytest.mark.asyncio
    async def test_first_attempt_success_does_not_sleep(self, orchestrator, sleep):
        operation = ScriptedOperation(_success())

        outcome = await orchestrator.run(operation, max_attempts=3)

        assert outcome.success is True
        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_success_on_third_attempt_with_linear_backoff(self, orchestrator, sleep):
        operation = ScriptedOperation(
            ExtractionFailure(error="timeout"),
            ExtractionFailure(error="timeout"),
            _success(),
        )

        outcome = await orchestrator.run(operation, max_attempts=3)

        assert outcome.success is True
        assert operation.calls == 3
        assert sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_raised_error_counts_as_failed_attempt(self, orchestrator, sleep):
        operation = ScriptedOperation(RuntimeError("browser crashed"), _success())

        outcome = await orchestrator.run(operation, max_attempts=3)

        assert outcome.success is True
        assert operation.calls == 2
        assert sleep.delays == [2.0]


class TestRetryExhaustion:
    @pytest.mark.asyncio
    async def test_exhaustion_returns_fallback(self, orchestrator, sleep):
        operation = ScriptedOperation(
            ExtractionFailure(error="first"),
            ExtractionFailure(error="second"),
            ExtractionFailure(error="Incomplete data extraction"),
        )

        outcome = await orchestrator.run(operation, max_attempts=3)

        assert outcome.success is False
        assert outcome.error == "Incomplete data extraction"
        assert outcome.attempts == 3
        assert outcome.fallback_data == FALLBACK_READING
        assert outcome.fallback_data.source == ReadingSource.FALLBACK_CACHE
        assert operation.calls == 3
        assert sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_exception_message_is_last_error(self, orchestrator):
        operation = ScriptedOperation(ValueError("bad page"))

        outcome = await orchestrator.run(operation, max_attempts=1)

        assert outcome.success is False
        assert outcome.error == "bad page"
        assert outcome.attempts == 1

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self, orchestrator, sleep):
        outcome = await orchestrator.run(
            ScriptedOperation(ExtractionFailure(error="down")), max_attempts=1
        )

        assert outcome.attempts == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_custom_fallback_reading(self, sleep):
        fallback = IndicatorReading(liquidity=1, source=ReadingSource.FALLBACK_CACHE)
        orchestrator = RetryOrchestrator(fallback_reading=fallback, sleep=sleep)

        outcome = await orchestrator.run(
            ScriptedOperation(ExtractionFailure(error="x")), max_attempts=1
        )

        assert outcome.fallback_data == fallback

    @pytest.mark.asyncio
    async def test_terminal_body_shape(self, orchestrator):
        outcome = await orchestrator.run(
            ScriptedOperation(ExtractionFailure(error="down")), max_attempts=1
        )
        body = outcome.to_dict()

        assert body["success"] is False
        assert body["error"] == "down"
        assert body["attempts"] == 1
        assert body["fallback_data"]["participants"] == 2_110_192
        assert body["fallback_data"]["source"] == "fallback_cache"

    @pytest.mark.asyncio
    async def test_invalid_max_attempts(self, orchestrator):
        with pytest.raises(ValueError):
            await orchestrator.run(ScriptedOperation(_success()), max_attempts=0)


class TestRetryObservers:
    @pytest.mark.asyncio
    async def test_observer_sees_every_attempt_and_terminal(self, orchestrator):
        records = []
        orchestrator.add_observer(records.append)
        operation = ScriptedOperation(ExtractionFailure(error="timeout"), _success())

        await orchestrator.run(operation, max_attempts=3)

        assert [(r.attempt, r.terminal) for r in records] == [(1, False), (2, False), (2, True)]
        assert records[0].outcome.success is False
        assert records[-1].outcome.success is True
        assert all(r.name == "webhook" for r in records)

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_change_outcome(self, sleep):
        def broken_observer(record):
            raise RuntimeError("observer bug")

        orchestrator = RetryOrchestrator(sleep=sleep, observers=[broken_observer])

        outcome = await orchestrator.run(ScriptedOperation(_success()), max_attempts=3)

        assert outcome.success is True


class TestRetryWrap:
    @pytest.mark.asyncio
    async def test_wrap_binds_max_attempts(self, orchestrator, sleep):
        operation = ScriptedOperation(
            ExtractionFailure(error="a"),
            ExtractionFailure(error="b"),
        )
        wrapped = orchestrator.wrap(operation, max_attempts=2)

        outcome = await wrapped()

        assert outcome.attempts == 2
        assert sleep.delays == [2.0]
