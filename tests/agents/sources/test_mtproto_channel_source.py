"""Tests for MtprotoChannelSource with the Telethon client faked out."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from indicator_system.agents.sources.errors import SourceUnavailableError
from indicator_system.agents.sources.mtproto_channel_source import MtprotoChannelSource
from indicator_system.data_management.schemas import ReadingSource


MONITOR_POST = (
    "💧 Liquidez: 22,137,315.46 USDT\n"
    "💧 Liquidez: 6,185,201.04 USDC\n"
    "🔢 Total: 28,322,516.50"
)

POSTED_AT = datetime(2025, 10, 31, 12, 0, tzinfo=timezone.utc)


# ── Fixtures ──────────────────────────────────────────────────────────


class FakeTelethonClient:
    """Implements the TelegramClient calls the source makes."""

    def __init__(self, messages=(), authorized=True, connect_error=None, entity_error=None):
        self.messages = list(messages)
        self.authorized = authorized
        self.connect_error = connect_error
        self.entity_error = entity_error
        self.entity_lookups: list = []
        self.history_limits: list[int] = []
        self.disconnected = False

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error

    async def is_user_authorized(self):
        return self.authorized

    async def get_entity(self, target):
        self.entity_lookups.append(target)
        if self.entity_error is not None:
            raise self.entity_error
        return SimpleNamespace(id=1234567890, username=target)

    async def get_messages(self, entity, limit):
        self.history_limits.append(limit)
        return self.messages[:limit]

    async def disconnect(self):
        self.disconnected = True


def _message(msg_id, text, date=POSTED_AT):
    return SimpleNamespace(id=msg_id, message=text, date=date)


def _source(client, session="1BVtsOK4Bu...", **kwargs):
    return MtprotoChannelSource(
        api_id=123456,
        api_hash="0123456789abcdef0123456789abcdef",
        session=session,
        client_factory=lambda: client,
        **kwargs,
    )


# ── Connection ────────────────────────────────────────────────────────


class TestMtprotoConnection:
    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self):
        client = FakeTelethonClient()
        source = _source(client)

        async with source:
            assert source.connected is True

        assert source.connected is False
        assert client.disconnected is True

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        source = MtprotoChannelSource(api_id=None, api_hash=None, session="s")

        with pytest.raises(SourceUnavailableError, match="TELEGRAM_API_ID"):
            await source.connect()

    @pytest.mark.asyncio
    async def test_missing_session(self):
        source = _source(FakeTelethonClient(), session=None)

        with pytest.raises(SourceUnavailableError, match="TELEGRAM_SESSION is required"):
            await source.connect()

    @pytest.mark.asyncio
    async def test_unauthorized_session_is_closed(self):
        client = FakeTelethonClient(authorized=False)
        source = _source(client)

        with pytest.raises(SourceUnavailableError, match="not authorized"):
            await source.connect()

        assert client.disconnected is True
        assert source.connected is False

    @pytest.mark.asyncio
    async def test_network_failure(self):
        client = FakeTelethonClient(connect_error=ConnectionError("network down"))
        source = _source(client)

        with pytest.raises(SourceUnavailableError, match="MTProto connection failed: network down"):
            await source.connect()


# ── Extraction ────────────────────────────────────────────────────────


class TestMtprotoExtraction:
    @pytest.mark.asyncio
    async def test_newest_parsable_post_wins(self):
        client = FakeTelethonClient(messages=[
            _message(42, "New contribution: 500 USDT"),
            _message(41, MONITOR_POST),
            _message(40, "🔢 Total: 1.00"),
        ])
        source = _source(client, channel="@BitnestMonitor", message_limit=10)

        outcome = await source.extract()

        assert outcome.success is True
        assert outcome.data.liquidity == 28_322_516.5
        assert outcome.data.participants is None
        assert outcome.data.source == ReadingSource.TELEGRAM
        assert outcome.metadata["source"] == "telegram_mtproto"
        assert outcome.metadata["channel"] == "BitnestMonitor"
        assert outcome.metadata["message_id"] == 41
        assert outcome.metadata["message_date"] == "2025-10-31T12:00:00Z"
        assert outcome.metadata["messages_checked"] == 3
        assert outcome.metadata["liquidity_breakdown"] == {
            "liquidity_usdt": 22_137_315.46,
            "liquidity_usdc": 6_185_201.04,
        }
        assert client.entity_lookups == ["BitnestMonitor"]
        assert client.history_limits == [10]

    @pytest.mark.asyncio
    async def test_channel_entity_resolved_once(self):
        client = FakeTelethonClient(messages=[_message(1, MONITOR_POST)])
        source = _source(client)

        await source.extract()
        await source.extract()

        assert len(client.entity_lookups) == 1

    @pytest.mark.asyncio
    async def test_numeric_channel_id(self):
        client = FakeTelethonClient(messages=[_message(1, MONITOR_POST)])
        source = _source(client, channel="-1001234567890")

        await source.extract()

        assert client.entity_lookups == [-1001234567890]

    @pytest.mark.asyncio
    async def test_no_parsable_post(self):
        client = FakeTelethonClient(messages=[_message(1, "hello"), _message(2, None)])
        source = _source(client)

        outcome = await source.extract()

        assert outcome.success is False
        assert outcome.error == "No valid indicators found in recent messages"

    @pytest.mark.asyncio
    async def test_unknown_channel(self):
        client = FakeTelethonClient(entity_error=ValueError("Cannot find any entity"))
        source = _source(client, channel="missing_channel")

        outcome = await source.extract()

        assert outcome.success is False
        assert outcome.error == "Channel @missing_channel not found or not accessible"

    def test_capabilities_match_telegram_source(self):
        source = _source(FakeTelethonClient())

        assert source.get_capabilities() == ["indicator_extraction", "source:telegram"]
