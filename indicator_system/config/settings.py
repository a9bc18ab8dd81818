"""Application settings using Pydantic BaseSettings for environment variable management."""

from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Attributes:
        api_key: Bearer key expected on protected endpoints
        cache_ttl_ms: Lifetime of the cached dual-source result
        max_retries: Attempts against the web page source per request
        telegram_max_retries: Attempts against the Telegram source per request
        retry_delay_ms: Base delay for linear backoff between attempts
        rate_limit_window_ms: Rate limiting window
        rate_limit_max_requests: Requests allowed per client per window
        page_url: Page holding the public indicators
        playwright_timeout_ms: Navigation timeout for the page source
        playwright_wait_ms: Extra wait after network idle before reading the page
        telegram_transport: How the Telegram source reads the channel (bot or mtproto)
        telegram_bot_token: Telegram Bot API token
        telegram_chat_id: Chat receiving the monitor channel posts
        telegram_message_limit: Number of recent updates scanned
        http_timeout: Timeout for Bot API HTTP calls in seconds
        telegram_api_id: Telegram application id for the MTProto transport
        telegram_api_hash: Telegram application hash for the MTProto transport
        telegram_session: Telethon string session for the MTProto transport
        telegram_channel: Channel read by the MTProto transport
        host: API bind address
        port: API port
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
    """

    api_key: str | None = Field(
        default=None,
        description="API key expected in 'Authorization: Bearer <key>'"
    )
    cache_ttl_ms: int = Field(
        default=300_000,
        description="Cache lifetime in milliseconds (5 minutes)"
    )
    max_retries: int = Field(
        default=3,
        description="Maximum extraction attempts for the web page source"
    )
    telegram_max_retries: int = Field(
        default=1,
        description="Maximum extraction attempts for the Telegram source"
    )
    retry_delay_ms: int = Field(
        default=2000,
        description="Base retry delay; attempt N waits N * delay"
    )
    rate_limit_window_ms: int = Field(
        default=3_600_000,
        description="Rate limiting window in milliseconds (1 hour)"
    )
    rate_limit_max_requests: int = Field(
        default=60,
        description="Maximum requests per client within one window"
    )
    page_url: str = Field(
        default="https://bitnest.me/intro",
        description="Web page exposing participants, income and liquidity"
    )
    playwright_timeout_ms: int = Field(
        default=30_000,
        description="Playwright navigation timeout"
    )
    playwright_wait_ms: int = Field(
        default=5000,
        description="Wait after network idle so client-side data can render"
    )
    telegram_transport: Literal["bot", "mtproto"] = Field(
        default="bot",
        description="bot: Telegram Bot API getUpdates; mtproto: user session via Telethon"
    )
    telegram_bot_token: str | None = Field(
        default=None,
        description="Telegram Bot API token"
    )
    telegram_chat_id: str | None = Field(
        default=None,
        description="Chat id the bot reads monitor posts from"
    )
    telegram_message_limit: int = Field(
        default=20,
        description="Number of recent updates to scan for indicators"
    )
    http_timeout: float = Field(
        default=30.0,
        description="Bot API request timeout in seconds"
    )
    telegram_api_id: int | None = Field(
        default=None,
        description="Application id from my.telegram.org"
    )
    telegram_api_hash: str | None = Field(
        default=None,
        description="Application hash from my.telegram.org"
    )
    telegram_session: str | None = Field(
        default=None,
        description="String session printed by telegram-login"
    )
    telegram_channel: str = Field(
        default="BitnestMonitor",
        description="Public channel read over MTProto"
    )
    host: str = Field(
        default="0.0.0.0",
        description="API bind address"
    )
    port: int = Field(
        default=8080,
        description="API port"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance - import this throughout the application
settings = Settings()
