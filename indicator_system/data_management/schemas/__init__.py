"""Schema package for indicator readings, extraction outcomes and validation results.

Primary exports:
- IndicatorReading: immutable single-source snapshot of the three indicators
- ExtractionSuccess / ExtractionFailure: tagged extraction outcome
- PublishedResult: reconciled, trust-tagged answer with its audit trail

Usage:
    from indicator_system.data_management.schemas import IndicatorReading, ReadingSource
    reading = IndicatorReading(participants=2110192, revenues=752040501,
                               liquidity=30463309, source=ReadingSource.WEBHOOK)
"""

from indicator_system.data_management.schemas.indicator_schema import (
    INDICATORS,
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
    IndicatorReading,
    ReadingSource,
    SourceName,
    utc_now_iso,
)
from indicator_system.data_management.schemas.validation_schema import (
    DivergenceReport,
    PublishedResult,
    SourceSnapshot,
    ValidationStatus,
    ValidationSummary,
)

__all__ = [
    "INDICATORS",
    "ExtractionFailure",
    "ExtractionOutcome",
    "ExtractionSuccess",
    "IndicatorReading",
    "ReadingSource",
    "SourceName",
    "utc_now_iso",
    "DivergenceReport",
    "PublishedResult",
    "SourceSnapshot",
    "ValidationStatus",
    "ValidationSummary",
]
