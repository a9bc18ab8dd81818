"""Indicator reading and extraction outcome schemas.

A reading is one snapshot of the three platform indicators taken from a
single source. Sources do not expose identical fields: the Telegram monitor
channel only publishes liquidity, so participants and revenues are None for
its readings. None always means "not extractable from this source", never 0.

Extraction outcomes are a tagged union on the ``success`` field and serialize
to the JSON bodies returned by the single-source endpoints:

    {"success": true, "data": {...}, "metadata": {"extraction_time_ms": 812}}
    {"success": false, "error": "...", "fallback_data": {...}, "attempts": 3}
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

# Indicator field names, in reporting order
INDICATORS: tuple[str, ...] = ("participants", "revenues", "liquidity")

Number = Union[int, float]


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class SourceName(str, Enum):
    """The two independent channels a reading can come from."""

    WEBHOOK = "webhook"
    TELEGRAM = "telegram"


class ReadingSource(str, Enum):
    """Tag describing where a published reading came from.

    WEBHOOK / TELEGRAM: raw reading from one source.
    DUAL_SOURCE_AVERAGE: per-indicator mean of two agreeing sources.
    WEBHOOK_PRIMARY: primary reading published under moderate divergence.
    WEBHOOK_PRIMARY_CRITICAL: primary reading published under critical divergence.
    FALLBACK_CACHE: static last-known-good values.
    """

    WEBHOOK = "webhook"
    TELEGRAM = "telegram"
    DUAL_SOURCE_AVERAGE = "dual_source_average"
    WEBHOOK_PRIMARY = "webhook_primary"
    WEBHOOK_PRIMARY_CRITICAL = "webhook_primary_critical"
    FALLBACK_CACHE = "fallback_cache"


class IndicatorReading(BaseModel):
    """Immutable snapshot of the three indicators from one source."""

    participants: Optional[Number] = Field(
        default=None, description="Participant count"
    )
    revenues: Optional[Number] = Field(
        default=None, description="Cumulative participant income (USDT)"
    )
    liquidity: Optional[Number] = Field(
        default=None, description="Liquidity (USDT)"
    )
    timestamp: str = Field(
        default_factory=utc_now_iso,
        description="ISO 8601 time the reading was taken",
    )
    source: ReadingSource = Field(..., description="Origin tag of this reading")

    model_config = {"frozen": True}

    def value_of(self, indicator: str) -> Optional[Number]:
        """Return the value for one of INDICATORS."""
        if indicator not in INDICATORS:
            raise KeyError(f"Unknown indicator: {indicator}")
        return getattr(self, indicator)

    def with_source(self, source: ReadingSource) -> "IndicatorReading":
        """Copy of this reading re-tagged with another source."""
        return self.model_copy(update={"source": source})

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ExtractionSuccess(BaseModel):
    """A source produced a usable reading."""

    success: Literal[True] = True
    data: IndicatorReading
    extraction_time_ms: int = Field(default=0, ge=0)
    cached: bool = False
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Source-specific details (message id, breakdowns, ...)",
    )

    model_config = {"frozen": True}

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "data": self.data.to_dict(),
            "metadata": {
                "extraction_time_ms": self.extraction_time_ms,
                **self.metadata,
            },
        }


class ExtractionFailure(BaseModel):
    """A source could not produce a reading.

    ``fallback_data`` and ``attempts`` are only set on the terminal failure
    returned by the retry orchestrator once every attempt is spent.
    """

    success: Literal[False] = False
    error: str
    fallback_data: Optional[IndicatorReading] = None
    attempts: Optional[int] = None
    extraction_time_ms: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.error}
        if self.fallback_data is not None:
            body["fallback_data"] = self.fallback_data.to_dict()
        if self.attempts is not None:
            body["attempts"] = self.attempts

        metadata = dict(self.metadata)
        if self.extraction_time_ms is not None:
            metadata["extraction_time_ms"] = self.extraction_time_ms
        if metadata:
            body["metadata"] = metadata
        return body


ExtractionOutcome = Union[ExtractionSuccess, ExtractionFailure]
