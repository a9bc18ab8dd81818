"""Text-to-indicator parsers for the two source formats.

Parsers are pluggable: a source only relies on ``parse(raw_text)`` returning
an IndicatorReading or None. Formats handled here:

Web page body text:
    Participants
    2,110,192
    Participant income
    752,040,501
    USDT
    Liquidity
    30,463,309
    USDT

Telegram monitor channel post:
    💧 Liquidez: 22,137,315.46 USDT
    💧 Liquidez: 6,185,201.04 USDC
    🔢 Total: 28,322,516.50
"""

import re
from abc import ABC, abstractmethod
from typing import Optional

from indicator_system.data_management.schemas import IndicatorReading, ReadingSource

PAGE_PATTERNS: dict[str, re.Pattern] = {
    "participants": re.compile(r"Participants\s+(\d{1,3}(?:,\d{3})*)", re.IGNORECASE),
    "revenues": re.compile(
        r"Participant income\s+(\d{1,3}(?:,\d{3})*)\s+USDT", re.IGNORECASE
    ),
    "liquidity": re.compile(r"Liquidity\s+(\d{1,3}(?:,\d{3})*)\s+USDT", re.IGNORECASE),
}

CHANNEL_PATTERNS: dict[str, re.Pattern] = {
    "liquidity_usdt": re.compile(r"💧\s*Liquidez:\s*([\d,.]+)\s*USDT", re.IGNORECASE),
    "liquidity_usdc": re.compile(r"💧\s*Liquidez:\s*([\d,.]+)\s*USDC", re.IGNORECASE),
    "total": re.compile(r"🔢\s*Total:\s*([\d,.]+)", re.IGNORECASE),
}


def parse_number(text: Optional[str]) -> Optional[float]:
    """Parse a number with comma thousand separators.

    "22,137,315.46" -> 22137315.46; None for empty or malformed input.
    """
    if not text:
        return None
    try:
        return float(text.replace(",", ""))
    except ValueError:
        return None


def parse_integer(text: Optional[str]) -> Optional[int]:
    """Parse a comma-grouped integer such as "2,110,192"."""
    if not text:
        return None
    try:
        return int(text.replace(",", ""))
    except ValueError:
        return None


class IndicatorParser(ABC):
    """Turns raw source text into a reading."""

    @abstractmethod
    def parse(self, raw_text: str) -> Optional[IndicatorReading]:
        """Return a reading, or None when the text holds no usable indicators."""


class WebPageParser(IndicatorParser):
    """Parser for the platform's public statistics page."""

    def extract_fields(self, raw_text: str) -> dict[str, Optional[int]]:
        """Every page indicator, None where its pattern did not match."""
        fields: dict[str, Optional[int]] = {}
        for name, pattern in PAGE_PATTERNS.items():
            match = pattern.search(raw_text or "")
            fields[name] = parse_integer(match.group(1)) if match else None
        return fields

    def parse(self, raw_text: str) -> Optional[IndicatorReading]:
        fields = self.extract_fields(raw_text)
        if not all(fields.values()):
            return None
        return IndicatorReading(**fields, source=ReadingSource.WEBHOOK)


class ChannelMessageParser(IndicatorParser):
    """Parser for monitor channel posts.

    Posts only carry liquidity: ``Total`` becomes the liquidity indicator and
    participants/revenues stay None.
    """

    def liquidity_breakdown(self, raw_text: str) -> dict[str, Optional[float]]:
        """USDT and USDC liquidity components, None where absent."""
        breakdown: dict[str, Optional[float]] = {}
        for name in ("liquidity_usdt", "liquidity_usdc"):
            match = CHANNEL_PATTERNS[name].search(raw_text or "")
            breakdown[name] = parse_number(match.group(1)) if match else None
        return breakdown

    def parse(self, raw_text: str) -> Optional[IndicatorReading]:
        if not raw_text or not isinstance(raw_text, str):
            return None

        match = CHANNEL_PATTERNS["total"].search(raw_text)
        if not match:
            return None

        total = parse_number(match.group(1))
        if not total or total <= 0:
            return None

        return IndicatorReading(
            participants=None,
            revenues=None,
            liquidity=total,
            source=ReadingSource.TELEGRAM,
        )
