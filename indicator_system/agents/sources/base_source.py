"""Base class for all indicator source agents."""

import time
from abc import abstractmethod
from typing import Any

from indicator_system.agents.base_agent import BaseAgent
from indicator_system.agents.sources.errors import SourceError
from indicator_system.data_management.schemas import (
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
    IndicatorReading,
    SourceName,
)


class BaseIndicatorSource(BaseAgent):
    """
    Abstract base class for agents reading the indicators from one channel.

    Subclasses implement ``read_indicators`` and raise SourceError subclasses
    when the channel is unreachable or its content cannot be parsed.
    ``extract`` wraps that call into the ExtractionOutcome contract consumed
    by the retry orchestrator and the coordinator: it never raises, it times
    the extraction, and it logs success or failure.

    Attributes:
        source_name: Which of the two sources this agent reads
        extraction_count: Number of extract() calls
        failure_count: Number of extract() calls that returned a failure
    """

    def __init__(self, source_name: SourceName):
        super().__init__(name=source_name.value)
        self.source_name = source_name
        self.extraction_count = 0
        self.failure_count = 0

    @abstractmethod
    async def read_indicators(self) -> tuple[IndicatorReading, dict[str, Any]]:
        """
        Fetch and parse one reading from the source.

        Returns:
            The reading and source-specific metadata for the audit trail

        Raises:
            SourceUnavailableError: Source could not be reached
            IncompleteExtractionError: Content could not be turned into a reading
        """
        pass

    async def extract(self) -> ExtractionOutcome:
        """
        Produce one ExtractionOutcome from the source.

        Returns:
            ExtractionSuccess with timing, or ExtractionFailure with the error message
        """
        start = time.monotonic()
        self.extraction_count += 1
        self.logger.info("Starting extraction", source=self.source_name.value)

        try:
            reading, metadata = await self.read_indicators()
        except SourceError as e:
            return self._failure(str(e), start)
        except Exception as e:
            self.logger.error(
                "Unexpected extraction error",
                source=self.source_name.value,
                error_type=type(e).__name__,
            )
            return self._failure(str(e) or type(e).__name__, start)

        elapsed_ms = self._elapsed_ms(start)
        self.logger.info(
            "Extraction successful",
            source=self.source_name.value,
            participants=reading.participants,
            revenues=reading.revenues,
            liquidity=reading.liquidity,
            extraction_time_ms=elapsed_ms,
        )
        return ExtractionSuccess(
            data=reading,
            extraction_time_ms=elapsed_ms,
            metadata=metadata,
        )

    def _failure(self, error: str, start: float) -> ExtractionFailure:
        elapsed_ms = self._elapsed_ms(start)
        self.failure_count += 1
        self.logger.error(
            "Extraction failed",
            source=self.source_name.value,
            error=error,
            extraction_time_ms=elapsed_ms,
        )
        return ExtractionFailure(error=error, extraction_time_ms=elapsed_ms)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)

    def get_capabilities(self) -> list[str]:
        """
        Return source capabilities.

        Returns:
            List of capability identifiers this source provides
        """
        return [
            "indicator_extraction",
            f"source:{self.source_name.value}",
        ]
