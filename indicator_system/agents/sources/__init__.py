"""Source agents reading the indicators from independent channels.

- WebPageSource: headless-browser scrape of the public statistics page
- TelegramChannelSource: monitor channel posts through the Telegram Bot API
- MtprotoChannelSource: the public monitor channel read with a Telethon user session
"""

from indicator_system.agents.sources.base_source import BaseIndicatorSource
from indicator_system.agents.sources.errors import (
    IncompleteExtractionError,
    SourceError,
    SourceUnavailableError,
)
from indicator_system.agents.sources.mtproto_channel_source import MtprotoChannelSource
from indicator_system.agents.sources.parsers import (
    ChannelMessageParser,
    IndicatorParser,
    WebPageParser,
    parse_integer,
    parse_number,
)
from indicator_system.agents.sources.telegram_channel_source import TelegramChannelSource
from indicator_system.agents.sources.web_page_source import WebPageSource

__all__ = [
    "BaseIndicatorSource",
    "ChannelMessageParser",
    "IncompleteExtractionError",
    "IndicatorParser",
    "MtprotoChannelSource",
    "SourceError",
    "SourceUnavailableError",
    "TelegramChannelSource",
    "WebPageParser",
    "WebPageSource",
    "parse_integer",
    "parse_number",
]
