"""Cross-validation result schemas.

PublishedResult is the JSON body returned to HTTP clients. Downstream
automation reads ``success``, ``data``, ``validation.status``,
``validation.divergence``, ``validation.recommendation`` and
``metadata.extraction_time_ms`` by name, so these fields must not be renamed.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from indicator_system.data_management.schemas.indicator_schema import (
    IndicatorReading,
    Number,
)


class ValidationStatus(str, Enum):
    """Trust tier of a published result.

    VERIFIED < WARNING < CRITICAL are ordered by severity and only occur when
    both sources succeeded. SINGLE_SOURCE and FAILED are the degenerate cases.
    """

    VERIFIED = "VERIFIED"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    SINGLE_SOURCE = "SINGLE_SOURCE"
    FAILED = "FAILED"

    @property
    def severity(self) -> Optional[int]:
        """Rank among the divergence tiers, None for degenerate states."""
        return _SEVERITY.get(self)


_SEVERITY = {
    ValidationStatus.VERIFIED: 0,
    ValidationStatus.WARNING: 1,
    ValidationStatus.CRITICAL: 2,
}


class DivergenceReport(BaseModel):
    """Percentage divergence per indicator between two readings.

    100 is the sentinel for an indicator missing or non-positive on either
    side.
    """

    participants_pct: float = Field(..., ge=0.0, le=100.0)
    revenues_pct: float = Field(..., ge=0.0, le=100.0)
    liquidity_pct: float = Field(..., ge=0.0, le=100.0)

    model_config = {"frozen": True}

    @property
    def max_divergence(self) -> float:
        return max(self.participants_pct, self.revenues_pct, self.liquidity_pct)


class SourceSnapshot(BaseModel):
    """Raw per-source values kept in the audit trail."""

    participants: Optional[Number] = None
    revenues: Optional[Number] = None
    liquidity: Optional[Number] = None
    timestamp: Optional[str] = None
    extraction_time_ms: Optional[int] = None

    model_config = {"frozen": True}

    @classmethod
    def from_reading(
        cls, reading: IndicatorReading, extraction_time_ms: Optional[int]
    ) -> "SourceSnapshot":
        return cls(
            participants=reading.participants,
            revenues=reading.revenues,
            liquidity=reading.liquidity,
            timestamp=reading.timestamp,
            extraction_time_ms=extraction_time_ms,
        )


class ValidationSummary(BaseModel):
    """Forensic audit block attached to every published result."""

    sources_used: list[str] = Field(default_factory=list)
    status: ValidationStatus
    divergence: Optional[DivergenceReport] = None
    webhook_data: Optional[SourceSnapshot] = None
    telegram_data: Optional[SourceSnapshot] = None
    recommendation: str


class PublishedResult(BaseModel):
    """Reconciled answer returned to clients."""

    success: bool
    data: Optional[IndicatorReading] = None
    error: Optional[str] = None
    validation: ValidationSummary
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def status(self) -> ValidationStatus:
        return self.validation.status

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the HTTP body; divergence and error only when set."""
        body = self.model_dump(mode="json")
        if self.validation.divergence is None:
            body["validation"].pop("divergence")
        if self.error is None:
            body.pop("error")
        return body
