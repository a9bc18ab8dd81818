"""Secondary indicator source: the public monitor channel read over MTProto.

A user session (not a bot) reads the channel's history directly, so no bot
has to be added to the channel and no chat forwarding is needed. The session
is a Telethon string session created once with ``indicator-system
telegram-login`` and stored in TELEGRAM_SESSION.

Setup:
1. Get an API id and hash from https://my.telegram.org
2. Run ``indicator-system telegram-login`` and store the printed session
3. Set TELEGRAM_TRANSPORT=mtproto and TELEGRAM_CHANNEL (default BitnestMonitor)
"""

from typing import Any, Awaitable, Callable, Optional, Union

from telethon import TelegramClient
from telethon.errors import RPCError
from telethon.sessions import StringSession

from indicator_system.agents.sources.base_source import BaseIndicatorSource
from indicator_system.agents.sources.errors import (
    IncompleteExtractionError,
    SourceUnavailableError,
)
from indicator_system.agents.sources.parsers import ChannelMessageParser
from indicator_system.data_management.schemas import IndicatorReading, SourceName

ClientFactory = Callable[[], TelegramClient]

CONNECTION_RETRIES = 5


class MtprotoChannelSource(BaseIndicatorSource):
    """
    Reads the liquidity total from the newest parsable channel post.

    Attributes:
        channel: Channel username (without @) or numeric id
        message_limit: Number of recent posts scanned
    """

    def __init__(
        self,
        api_id: Optional[int],
        api_hash: Optional[str],
        session: Optional[str],
        channel: str = "BitnestMonitor",
        parser: Optional[ChannelMessageParser] = None,
        message_limit: int = 20,
        client_factory: Optional[ClientFactory] = None,
    ):
        """
        Initialize MTProto channel source.

        Args:
            api_id: Telegram application id
            api_hash: Telegram application hash
            session: Telethon string session of an authorized user
            channel: Channel username or id to read
            parser: Channel post parser
            message_limit: Number of recent posts to scan
            client_factory: Builds the Telethon client (tests pass a fake)
        """
        super().__init__(source_name=SourceName.TELEGRAM)
        self._api_id = api_id
        self._api_hash = api_hash
        self._session = session
        self.channel = channel.lstrip("@")
        self.parser = parser or ChannelMessageParser()
        self.message_limit = message_limit
        self._client_factory = client_factory or self._build_client
        self._client: Optional[TelegramClient] = None
        self._channel_entity: Any = None

    def _build_client(self) -> TelegramClient:
        return TelegramClient(
            StringSession(self._session),
            self._api_id,
            self._api_hash,
            connection_retries=CONNECTION_RETRIES,
        )

    async def connect(self) -> None:
        """
        Open the MTProto connection and check the session is authorized.

        Raises:
            SourceUnavailableError: Missing credentials, network failure or
                an expired session
        """
        if self._client is not None:
            return

        if not (self._api_id and self._api_hash):
            raise SourceUnavailableError("TELEGRAM_API_ID and TELEGRAM_API_HASH are required")
        if not self._session:
            raise SourceUnavailableError(
                "TELEGRAM_SESSION is required, run: indicator-system telegram-login"
            )

        client = self._client_factory()
        try:
            await client.connect()
            authorized = await client.is_user_authorized()
        except (OSError, RPCError) as e:
            await client.disconnect()
            raise SourceUnavailableError(f"MTProto connection failed: {e}") from e

        if not authorized:
            await client.disconnect()
            raise SourceUnavailableError(
                "Telegram session is not authorized, run: indicator-system telegram-login"
            )

        self._client = client
        self.logger.info("Telegram user session connected", channel=self.channel)
        await super().connect()

    async def disconnect(self) -> None:
        if self._client is not None:
            try:
                await self._client.disconnect()
            finally:
                self._client = None
                self._channel_entity = None
        await super().disconnect()

    async def _resolve_channel(self) -> Any:
        if self._channel_entity is None:
            target: Union[int, str] = (
                int(self.channel) if self.channel.lstrip("-").isdigit() else self.channel
            )
            try:
                self._channel_entity = await self._client.get_entity(target)
            except (ValueError, RPCError) as e:
                raise SourceUnavailableError(
                    f"Channel @{self.channel} not found or not accessible"
                ) from e
            self.logger.info("Channel resolved", channel=self.channel)
        return self._channel_entity

    async def get_messages(self) -> list[Any]:
        """
        Recent channel posts, newest first.

        Raises:
            SourceUnavailableError: Channel lookup or history request failed
        """
        channel = await self._resolve_channel()
        try:
            messages = await self._client.get_messages(channel, limit=self.message_limit)
        except (OSError, RPCError) as e:
            raise SourceUnavailableError(f"Failed to read channel history: {e}") from e

        self.logger.info("Retrieved channel messages", count=len(messages), channel=self.channel)
        return list(messages)

    async def read_indicators(self) -> tuple[IndicatorReading, dict[str, Any]]:
        await self.connect()
        messages = await self.get_messages()

        for msg in messages:
            text = getattr(msg, "message", None)
            if not text:
                continue

            reading = self.parser.parse(text)
            if reading is None:
                continue

            message_date = msg.date.isoformat().replace("+00:00", "Z") if msg.date else None
            return reading, {
                "source": "telegram_mtproto",
                "channel": self.channel,
                "message_id": msg.id,
                "message_date": message_date,
                "messages_checked": len(messages),
                "liquidity_breakdown": self.parser.liquidity_breakdown(text),
            }

        raise IncompleteExtractionError("No valid indicators found in recent messages")


async def create_session_string(
    api_id: int,
    api_hash: str,
    phone: str,
    code_callback: Callable[[], Union[str, Awaitable[str]]],
    password_callback: Callable[[], str],
) -> str:
    """Log a user in interactively and return the reusable string session."""
    client = TelegramClient(StringSession(), api_id, api_hash)
    try:
        await client.start(
            phone=phone,
            code_callback=code_callback,
            password=password_callback,
        )
        return client.session.save()
    finally:
        await client.disconnect()
