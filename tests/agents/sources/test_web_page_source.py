"""Tests for WebPageSource with Playwright mocked out."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from indicator_system.agents.sources.errors import IncompleteExtractionError
from indicator_system.agents.sources.parsers import WebPageParser
from indicator_system.agents.sources.web_page_source import WebPageSource
from indicator_system.data_management.schemas import IndicatorReading, ReadingSource


PAGE_TEXT = (
    "Participants 2,110,192 Participant income 752,040,501 USDT "
    "Liquidity 30,463,309 USDT"
)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def source():
    return WebPageSource(url="https://example.test/intro", settle_wait_ms=0)


def _mock_playwright(page_text=PAGE_TEXT, goto_error=None):
    """Build an async_playwright() replacement and return it with the browser mock."""
    page = AsyncMock()
    page.text_content.return_value = page_text
    if goto_error is not None:
        page.goto.side_effect = goto_error

    context = AsyncMock()
    context.new_page.return_value = page

    browser = AsyncMock()
    browser.new_context.return_value = context

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)

    return MagicMock(return_value=manager), browser, page


# ── Page rendering ────────────────────────────────────────────────────


class TestFetchPageText:
    @pytest.mark.asyncio
    async def test_returns_body_text_and_closes_browser(self, source):
        factory, browser, page = _mock_playwright()

        with patch("indicator_system.agents.sources.web_page_source.async_playwright", factory):
            text = await source.fetch_page_text()

        assert text == PAGE_TEXT
        page.goto.assert_awaited_once_with(
            "https://example.test/intro",
            wait_until="networkidle",
            timeout=30_000,
        )
        page.text_content.assert_awaited_once_with("body")
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_navigation_error_still_closes_browser(self, source):
        factory, browser, _ = _mock_playwright(
            goto_error=PlaywrightError("Timeout 30000ms exceeded")
        )

        with patch("indicator_system.agents.sources.web_page_source.async_playwright", factory):
            outcome = await source.extract()

        assert outcome.success is False
        assert outcome.error.startswith("Page navigation failed")
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_body(self, source):
        factory, _, _ = _mock_playwright(page_text=None)

        with patch("indicator_system.agents.sources.web_page_source.async_playwright", factory):
            assert await source.fetch_page_text() == ""


# ── Extraction ────────────────────────────────────────────────────────


class TestWebPageExtraction:
    @pytest.mark.asyncio
    async def test_successful_extraction(self, source):
        source.fetch_page_text = AsyncMock(return_value=PAGE_TEXT)

        outcome = await source.extract()

        assert outcome.success is True
        assert outcome.data.participants == 2_110_192
        assert outcome.data.revenues == 752_040_501
        assert outcome.data.liquidity == 30_463_309
        assert outcome.data.source == ReadingSource.WEBHOOK
        assert outcome.metadata["browser"] == "chromium"
        assert outcome.metadata["text_length"] == len(PAGE_TEXT)
        assert outcome.extraction_time_ms >= 0
        assert source.extraction_count == 1
        assert source.failure_count == 0

    @pytest.mark.asyncio
    async def test_incomplete_page(self, source):
        source.fetch_page_text = AsyncMock(return_value="Participants 2,110,192")

        outcome = await source.extract()

        assert outcome.success is False
        assert outcome.error == (
            "Incomplete data extraction: participants=2110192, revenues=None, liquidity=None"
        )
        assert outcome.extraction_time_ms is not None
        assert source.failure_count == 1

    @pytest.mark.asyncio
    async def test_partial_reading_from_custom_parser_rejected(self):
        class LenientParser(WebPageParser):
            def parse(self, raw_text):
                return IndicatorReading(
                    participants=2_110_192,
                    revenues=752_040_501,
                    liquidity=0,
                    source=ReadingSource.WEBHOOK,
                )

        source = WebPageSource(url="https://example.test/intro", parser=LenientParser())
        source.fetch_page_text = AsyncMock(return_value=PAGE_TEXT)

        outcome = await source.extract()

        assert outcome.success is False
        assert outcome.error == (
            "Incomplete data extraction: participants=2110192, revenues=752040501, liquidity=0"
        )

    @pytest.mark.asyncio
    async def test_values_below_floor_rejected(self, source):
        source.fetch_page_text = AsyncMock(
            return_value="Participants 12 Participant income 752,040,501 USDT "
            "Liquidity 30,463,309 USDT"
        )

        outcome = await source.extract()

        assert outcome.success is False
        assert outcome.error == "Suspicious values detected: participants=12"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_failure(self, source):
        source.fetch_page_text = AsyncMock(side_effect=RuntimeError("boom"))

        outcome = await source.extract()

        assert outcome.success is False
        assert outcome.error == "boom"

    def test_check_sanity_with_custom_floors(self):
        source = WebPageSource(url="https://example.test", sanity_floors={"liquidity": 10**9})
        reading = source.parser.parse(PAGE_TEXT)

        with pytest.raises(IncompleteExtractionError):
            source.check_sanity(reading)

    def test_capabilities(self, source):
        assert source.get_capabilities() == ["indicator_extraction", "source:webhook"]
