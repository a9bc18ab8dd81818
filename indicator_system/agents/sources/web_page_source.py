"""Primary indicator source: the platform's public statistics page.

The page renders its figures client-side, so a plain HTTP GET only returns
the application shell. The source drives headless Chromium through
Playwright, waits for network idle plus a short settle delay, and parses the
body text.

One browser is launched per extraction and always closed, so a hung render
cannot leak into the next attempt.
"""

from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from indicator_system.agents.sources.base_source import BaseIndicatorSource
from indicator_system.agents.sources.errors import (
    IncompleteExtractionError,
    SourceUnavailableError,
)
from indicator_system.agents.sources.parsers import WebPageParser
from indicator_system.agents.validators.cross_validator import is_valid_reading
from indicator_system.config.sources import (
    BROWSER_LAUNCH_ARGS,
    BROWSER_USER_AGENT,
    BROWSER_VIEWPORT,
    PAGE_SANITY_FLOORS,
)
from indicator_system.data_management.schemas import (
    INDICATORS,
    IndicatorReading,
    SourceName,
)


class WebPageSource(BaseIndicatorSource):
    """
    Reads participants, participant income and liquidity from the web page.

    Attributes:
        url: Page URL
        navigation_timeout_ms: Playwright navigation timeout
        settle_wait_ms: Extra wait after network idle
        sanity_floors: Minimum plausible values per indicator
    """

    def __init__(
        self,
        url: str,
        parser: Optional[WebPageParser] = None,
        navigation_timeout_ms: int = 30_000,
        settle_wait_ms: int = 5000,
        sanity_floors: Optional[dict[str, int]] = None,
    ):
        """
        Initialize web page source.

        Args:
            url: Page exposing the indicators
            parser: Page text parser
            navigation_timeout_ms: Timeout for page navigation in milliseconds
            settle_wait_ms: Wait after network idle in milliseconds
            sanity_floors: Per-indicator minimums; below them the render is rejected
        """
        super().__init__(source_name=SourceName.WEBHOOK)
        self.url = url
        self.parser = parser or WebPageParser()
        self.navigation_timeout_ms = navigation_timeout_ms
        self.settle_wait_ms = settle_wait_ms
        self.sanity_floors = PAGE_SANITY_FLOORS if sanity_floors is None else sanity_floors

        self.logger.info(
            "WebPageSource initialized",
            url=url,
            navigation_timeout_ms=navigation_timeout_ms,
            settle_wait_ms=settle_wait_ms,
        )

    async def fetch_page_text(self) -> str:
        """
        Render the page in headless Chromium and return its body text.

        Raises:
            SourceUnavailableError: Browser launch or navigation failed
        """
        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=True, args=BROWSER_LAUNCH_ARGS)
                try:
                    context = await browser.new_context(
                        viewport=BROWSER_VIEWPORT,
                        user_agent=BROWSER_USER_AGENT,
                    )
                    page = await context.new_page()
                    await page.goto(
                        self.url,
                        wait_until="networkidle",
                        timeout=self.navigation_timeout_ms,
                    )
                    # Client-side data lands after network idle
                    await page.wait_for_timeout(self.settle_wait_ms)
                    body_text = await page.text_content("body")
                finally:
                    await browser.close()
        except PlaywrightError as e:
            raise SourceUnavailableError(f"Page navigation failed: {e}") from e

        text = body_text or ""
        self.logger.debug("Page content extracted", text_length=len(text))
        return text

    def check_sanity(self, reading: IndicatorReading) -> None:
        """
        Reject readings below the configured floors.

        Raises:
            IncompleteExtractionError: A value is implausibly small
        """
        suspicious = {
            name: reading.value_of(name)
            for name, floor in self.sanity_floors.items()
            if reading.value_of(name) is not None and reading.value_of(name) < floor
        }
        if suspicious:
            details = ", ".join(f"{name}={value}" for name, value in suspicious.items())
            raise IncompleteExtractionError(f"Suspicious values detected: {details}")

    async def read_indicators(self) -> tuple[IndicatorReading, dict[str, Any]]:
        text = await self.fetch_page_text()

        reading = self.parser.parse(text)
        if not is_valid_reading(reading):
            fields = (
                {name: reading.value_of(name) for name in INDICATORS}
                if reading is not None
                else self.parser.extract_fields(text)
            )
            details = ", ".join(f"{name}={value}" for name, value in fields.items())
            raise IncompleteExtractionError(f"Incomplete data extraction: {details}")

        self.check_sanity(reading)

        return reading, {
            "browser": "chromium",
            "url": self.url,
            "text_length": len(text),
        }
