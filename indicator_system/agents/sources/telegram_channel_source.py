"""Secondary indicator source: the monitor channel read through the Telegram Bot API.

The bot is an admin of a chat that receives the monitor channel's posts.
Recent updates are fetched with ``getUpdates``, filtered to that chat and
scanned newest first; the first post that parses wins.

Setup:
1. Create a bot with @BotFather and set TELEGRAM_BOT_TOKEN
2. Add the bot as admin of the chat receiving the monitor posts
3. Set TELEGRAM_CHAT_ID to the chat id (or @username)
"""

from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from indicator_system.agents.sources.base_source import BaseIndicatorSource
from indicator_system.agents.sources.errors import (
    IncompleteExtractionError,
    SourceUnavailableError,
)
from indicator_system.agents.sources.parsers import ChannelMessageParser
from indicator_system.config.sources import TELEGRAM_API_BASE
from indicator_system.data_management.schemas import IndicatorReading, SourceName


class TelegramChannelSource(BaseIndicatorSource):
    """
    Reads the liquidity total from recent monitor channel posts.

    Attributes:
        chat_id: Chat id or @username the posts arrive in
        message_limit: Number of recent updates scanned
        http_timeout: Bot API request timeout in seconds
        bot_username: Username reported by getMe once connected
    """

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        parser: Optional[ChannelMessageParser] = None,
        message_limit: int = 20,
        http_timeout: float = 30.0,
        poll_timeout: int = 10,
        api_base: str = TELEGRAM_API_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Telegram channel source.

        Args:
            bot_token: Telegram Bot API token
            chat_id: Chat id or @username receiving the monitor posts
            parser: Channel post parser
            message_limit: Number of recent updates to scan
            http_timeout: HTTP timeout in seconds
            poll_timeout: getUpdates long-poll timeout in seconds
            api_base: Bot API base URL
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(source_name=SourceName.TELEGRAM)
        self._bot_token = bot_token
        self.chat_id = str(chat_id) if chat_id is not None else None
        self.parser = parser or ChannelMessageParser()
        self.message_limit = message_limit
        self.http_timeout = http_timeout
        self.poll_timeout = poll_timeout
        self.api_base = api_base.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.bot_username: Optional[str] = None

    async def connect(self) -> None:
        """
        Create the HTTP client and check the bot token with getMe.

        Raises:
            SourceUnavailableError: Missing configuration or rejected token
        """
        if self._client is not None:
            return

        if not self._bot_token:
            raise SourceUnavailableError("TELEGRAM_BOT_TOKEN is required")
        if not self.chat_id:
            raise SourceUnavailableError("TELEGRAM_CHAT_ID is required")

        self._client = httpx.AsyncClient(
            base_url=f"{self.api_base}/bot{self._bot_token}",
            timeout=httpx.Timeout(self.http_timeout),
            transport=self._transport,
        )

        try:
            me = await self._call("getMe")
        except SourceUnavailableError as e:
            await self._close_client()
            raise SourceUnavailableError(f"Bot connection failed: {e}") from e

        self.bot_username = (me or {}).get("username")
        self.logger.info(
            "Telegram bot authorized",
            bot_username=self.bot_username,
            chat_id=self.chat_id,
        )
        await super().connect()

    async def disconnect(self) -> None:
        await self._close_client()
        await super().disconnect()

    async def _close_client(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self.logger.debug("HTTP client closed")

    async def _call(self, method: str, **params: Any) -> Any:
        """
        Invoke a Bot API method and return its ``result``.

        Raises:
            SourceUnavailableError: Transport error, non-JSON reply or ok=false
        """
        try:
            response = await self._client.post(f"/{method}", json=params)
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"Bot API {method} request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceUnavailableError(
                f"Bot API {method} returned non-JSON response (HTTP {response.status_code})"
            ) from e

        if not payload.get("ok"):
            description = payload.get("description") or f"HTTP {response.status_code}"
            raise SourceUnavailableError(f"Bot API {method} error: {description}")

        return payload.get("result")

    def _matches_chat(self, chat: dict[str, Any]) -> bool:
        if str(chat.get("id")) == self.chat_id:
            return True
        username = chat.get("username")
        return bool(username) and username == self.chat_id.lstrip("@")

    async def get_messages(self) -> list[dict[str, Any]]:
        """
        Recent messages from the configured chat, newest first.

        Raises:
            SourceUnavailableError: The Bot API call failed
        """
        updates = await self._call(
            "getUpdates",
            limit=self.message_limit,
            timeout=self.poll_timeout,
            allowed_updates=["message", "channel_post"],
        )

        messages = [
            update.get("message") or update.get("channel_post")
            for update in updates or []
        ]
        messages = [
            msg for msg in messages
            if msg and self._matches_chat(msg.get("chat") or {})
        ]
        messages.reverse()

        self.logger.info(
            "Retrieved chat messages",
            count=len(messages),
            chat_id=self.chat_id,
        )
        return messages

    async def read_indicators(self) -> tuple[IndicatorReading, dict[str, Any]]:
        await self.connect()
        messages = await self.get_messages()

        for msg in messages:
            text = msg.get("text")
            if not text:
                continue

            reading = self.parser.parse(text)
            if reading is None:
                continue

            message_date = None
            if msg.get("date"):
                message_date = (
                    datetime.fromtimestamp(msg["date"], tz=timezone.utc)
                    .isoformat()
                    .replace("+00:00", "Z")
                )

            return reading, {
                "source": "telegram_bot_api",
                "chat_id": self.chat_id,
                "message_id": msg.get("message_id"),
                "message_date": message_date,
                "messages_checked": len(messages),
                "liquidity_breakdown": self.parser.liquidity_breakdown(text),
            }

        raise IncompleteExtractionError("No valid indicators found in recent messages")
