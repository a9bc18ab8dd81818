"""Dual-source cross-validation of indicator readings.

Compares the readings of the primary web page source ("webhook") and the
Telegram monitor channel ("telegram") and publishes one trust-tagged value.

Validation tiers (max divergence over the three indicators):
- VERIFIED: < 1%   -> per-indicator mean of both sources
- WARNING:  1-5%   -> primary reading, tagged webhook_primary
- CRITICAL: >= 5%  -> primary reading, tagged webhook_primary_critical

Boundaries are half-open: exactly 1.0% is WARNING and exactly 5.0% is
CRITICAL. An indicator that is missing, zero or negative on either side has
divergence 100, so a source that omits a field is never counted as agreeing.

Degenerate cases:
- one source failed  -> SINGLE_SOURCE, that source's reading verbatim
- both failed        -> FAILED, success=False, no data

Usage:
    from indicator_system.agents.validators.cross_validator import CrossValidator

    validator = CrossValidator()
    result = validator.reconcile(webhook_outcome, telegram_outcome)
    body = result.to_dict()
"""

import math
import time
from typing import Any, Optional

from indicator_system.data_management.schemas import (
    INDICATORS,
    DivergenceReport,
    ExtractionOutcome,
    IndicatorReading,
    PublishedResult,
    ReadingSource,
    SourceName,
    SourceSnapshot,
    ValidationStatus,
    ValidationSummary,
    utc_now_iso,
)
from indicator_system.utils.logging import get_structured_logger

DIVERGENCE_THRESHOLDS: dict[str, float] = {
    "VERIFIED": 1.0,
    "WARNING": 5.0,
}

# Divergence reported for an indicator that cannot be compared
MAX_DIVERGENCE = 100.0


def _round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def calculate_divergence(value1: Optional[float], value2: Optional[float]) -> float:
    """Percentage gap between two values relative to the larger one.

    Returns MAX_DIVERGENCE when either value is missing, zero or negative.

    Examples:
        calculate_divergence(100, 105)            # 4.76
        calculate_divergence(1000000, 1000100)    # 0.01
        calculate_divergence(0, 500)              # 100.0
    """
    if value1 is None or value2 is None or value1 <= 0 or value2 <= 0:
        return MAX_DIVERGENCE

    high = max(value1, value2)
    low = min(value1, value2)
    return _round_half_up((high - low) / high * 100, 2)


def average(value1: float, value2: float) -> int:
    """Mean of two values rounded half up to an integer."""
    return int(_round_half_up((value1 + value2) / 2))


def compute_divergence_report(
    primary: IndicatorReading,
    secondary: IndicatorReading,
) -> DivergenceReport:
    return DivergenceReport(
        **{
            f"{name}_pct": calculate_divergence(
                primary.value_of(name), secondary.value_of(name)
            )
            for name in INDICATORS
        }
    )


def determine_validation_status(
    divergence: DivergenceReport,
    verified_threshold: float = DIVERGENCE_THRESHOLDS["VERIFIED"],
    warning_threshold: float = DIVERGENCE_THRESHOLDS["WARNING"],
) -> ValidationStatus:
    """Classify by the largest per-indicator divergence."""
    max_divergence = divergence.max_divergence

    if max_divergence < verified_threshold:
        return ValidationStatus.VERIFIED
    if max_divergence < warning_threshold:
        return ValidationStatus.WARNING
    return ValidationStatus.CRITICAL


def generate_recommendation(
    status: ValidationStatus,
    divergence: Optional[DivergenceReport] = None,
    available_source: Optional[SourceName] = None,
) -> str:
    """Human-readable guidance attached to every published result."""
    if status == ValidationStatus.VERIFIED:
        return "Data validated across both sources - high confidence"

    if status == ValidationStatus.WARNING:
        return (
            f"Moderate divergence detected (max {divergence.max_divergence:.2f}%)"
            " - review recommended"
        )

    if status == ValidationStatus.CRITICAL:
        return (
            f"CRITICAL: Significant divergence detected (max {divergence.max_divergence:.2f}%)"
            " - investigation required. Possible data manipulation or source error."
        )

    if status == ValidationStatus.SINGLE_SOURCE:
        if available_source == SourceName.WEBHOOK:
            return "Only webhook data available - Telegram extraction failed"
        return "Only Telegram data available - Webhook extraction failed"

    return "All extraction sources failed - check system status"


def is_valid_reading(reading: Optional[IndicatorReading]) -> bool:
    """True when all three indicators are present and strictly positive."""
    if reading is None:
        return False
    for name in INDICATORS:
        value = reading.value_of(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if value <= 0:
            return False
    return True


class CrossValidator:
    """Reconciles two independently obtained readings into one result.

    The webhook (web page) source is the primary: under WARNING or CRITICAL
    divergence its reading is published unmodified apart from the source tag.
    """

    def __init__(
        self,
        verified_threshold: float = DIVERGENCE_THRESHOLDS["VERIFIED"],
        warning_threshold: float = DIVERGENCE_THRESHOLDS["WARNING"],
    ) -> None:
        """Initialize CrossValidator.

        Args:
            verified_threshold: Max divergence (exclusive) for VERIFIED.
            warning_threshold: Max divergence (exclusive) for WARNING.
        """
        if not 0 < verified_threshold <= warning_threshold:
            raise ValueError(
                "Thresholds must satisfy 0 < verified_threshold <= warning_threshold"
            )
        self.verified_threshold = verified_threshold
        self.warning_threshold = warning_threshold
        self._logger = get_structured_logger("CrossValidator")

    def reconcile(
        self,
        webhook: ExtractionOutcome,
        telegram: ExtractionOutcome,
        correlation_id: Optional[str] = None,
    ) -> PublishedResult:
        """Cross-validate both outcomes and build the published result.

        Args:
            webhook: Outcome of the primary (web page) source.
            telegram: Outcome of the secondary (Telegram channel) source.
            correlation_id: Optional id tying logs to one dual extraction.

        Returns:
            PublishedResult with data, validation audit block and timings.
        """
        start = time.perf_counter()
        logger = self._logger.bind(correlation_id=correlation_id) if correlation_id else self._logger

        if not (webhook.success and telegram.success):
            return self._reconcile_degraded(webhook, telegram, start, logger)

        primary = webhook.data
        secondary = telegram.data

        divergence = compute_divergence_report(primary, secondary)
        status = determine_validation_status(
            divergence, self.verified_threshold, self.warning_threshold
        )
        compared = [
            name
            for name in INDICATORS
            if primary.value_of(name) is not None and secondary.value_of(name) is not None
        ]

        if status == ValidationStatus.VERIFIED:
            data = IndicatorReading(
                participants=average(primary.participants, secondary.participants),
                revenues=average(primary.revenues, secondary.revenues),
                liquidity=average(primary.liquidity, secondary.liquidity),
                timestamp=utc_now_iso(),
                source=ReadingSource.DUAL_SOURCE_AVERAGE,
            )
            logger.info(
                "cross_validation_verified",
                max_divergence=divergence.max_divergence,
            )
        else:
            tag = (
                ReadingSource.WEBHOOK_PRIMARY
                if status == ValidationStatus.WARNING
                else ReadingSource.WEBHOOK_PRIMARY_CRITICAL
            )
            data = primary.with_source(tag)
            log = logger.error if status == ValidationStatus.CRITICAL else logger.warning
            log(
                f"cross_validation_{status.value.lower()}",
                divergence=divergence.model_dump(),
                compared_indicators=compared,
            )

        return PublishedResult(
            success=True,
            data=data,
            validation=ValidationSummary(
                sources_used=[SourceName.WEBHOOK.value, SourceName.TELEGRAM.value],
                status=status,
                divergence=divergence,
                webhook_data=SourceSnapshot.from_reading(primary, webhook.extraction_time_ms),
                telegram_data=SourceSnapshot.from_reading(secondary, telegram.extraction_time_ms),
                recommendation=generate_recommendation(status, divergence),
            ),
            metadata={
                "validation_time_ms": self._elapsed_ms(start),
                "single_source": False,
                "compared_indicators": compared,
                "cached": {
                    SourceName.WEBHOOK.value: webhook.cached,
                    SourceName.TELEGRAM.value: telegram.cached,
                },
            },
        )

    def _reconcile_degraded(
        self,
        webhook: ExtractionOutcome,
        telegram: ExtractionOutcome,
        start: float,
        logger: Any,
    ) -> PublishedResult:
        """SINGLE_SOURCE or FAILED: at most one reading is available."""
        source_errors = {
            name.value: outcome.error
            for name, outcome in (
                (SourceName.WEBHOOK, webhook),
                (SourceName.TELEGRAM, telegram),
            )
            if not outcome.success
        }

        for name, outcome in ((SourceName.WEBHOOK, webhook), (SourceName.TELEGRAM, telegram)):
            if not outcome.success:
                continue

            logger.warning(
                "cross_validation_incomplete",
                available_source=name.value,
                source_errors=source_errors,
            )
            snapshot = SourceSnapshot.from_reading(outcome.data, outcome.extraction_time_ms)
            return PublishedResult(
                success=True,
                data=outcome.data,
                validation=ValidationSummary(
                    sources_used=[name.value],
                    status=ValidationStatus.SINGLE_SOURCE,
                    webhook_data=snapshot if name == SourceName.WEBHOOK else None,
                    telegram_data=snapshot if name == SourceName.TELEGRAM else None,
                    recommendation=generate_recommendation(
                        ValidationStatus.SINGLE_SOURCE, available_source=name
                    ),
                ),
                metadata={
                    "validation_time_ms": self._elapsed_ms(start),
                    "single_source": True,
                    "source_errors": source_errors,
                },
            )

        logger.error("cross_validation_failed", source_errors=source_errors)
        return PublishedResult(
            success=False,
            data=None,
            error="Both sources failed",
            validation=ValidationSummary(
                sources_used=[],
                status=ValidationStatus.FAILED,
                recommendation=generate_recommendation(ValidationStatus.FAILED),
            ),
            metadata={
                "validation_time_ms": self._elapsed_ms(start),
                "single_source": False,
                "source_errors": source_errors,
            },
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
