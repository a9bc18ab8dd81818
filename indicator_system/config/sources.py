"""Static source configuration.

Fallback values, sanity floors and browser profile for the two indicator
sources. Values here change only when the monitored platform changes.
"""

from indicator_system.data_management.schemas import IndicatorReading, ReadingSource

# Last known good values, served only once every retry attempt has failed
FALLBACK_READING = IndicatorReading(
    participants=2_110_192,
    revenues=752_040_501,
    liquidity=30_463_309,
    timestamp="2025-10-30T21:20:00Z",
    source=ReadingSource.FALLBACK_CACHE,
)

# Page values below these floors are treated as a broken render
PAGE_SANITY_FLOORS: dict[str, int] = {
    "participants": 1_000_000,
    "revenues": 100_000_000,
}

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_VIEWPORT: dict[str, int] = {"width": 1280, "height": 720}

BROWSER_LAUNCH_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

TELEGRAM_API_BASE = "https://api.telegram.org"
