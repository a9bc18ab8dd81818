"""End-to-end indicator extraction: sources -> retries -> cross-validation -> cache.

The pipeline owns one instance of every collaborator and is the only object
the HTTP API and the CLI talk to. Source agents are built once and connected
for the lifetime of the pipeline:

    async with IndicatorPipeline.from_settings(settings) as pipeline:
        body = await pipeline.extract_dual()

Single-source extractions are never cached. Dual-source results are cached
only when both sources contributed, so a degraded answer is retried on the
next request instead of being served for the whole TTL.
"""

import time
from typing import Any, Optional

from indicator_system.agents.sources.base_source import BaseIndicatorSource
from indicator_system.agents.sources.mtproto_channel_source import MtprotoChannelSource
from indicator_system.agents.sources.telegram_channel_source import TelegramChannelSource
from indicator_system.agents.sources.web_page_source import WebPageSource
from indicator_system.agents.validators.cross_validator import CrossValidator
from indicator_system.config.logging import get_logger
from indicator_system.config.settings import Settings
from indicator_system.data_management.result_cache import ResultCache
from indicator_system.data_management.schemas import SourceName, utc_now_iso
from indicator_system.orchestration.coordinator import DualSourceCoordinator
from indicator_system.orchestration.retry import RetryOrchestrator


class IndicatorPipeline:
    """Coordinates both sources, retries, validation and the result cache.

    Attributes:
        webhook_source: Primary source (web page)
        telegram_source: Secondary source (Telegram channel)
        cache: Single-slot cache of the last dual-source body
        max_retries: Attempts against the primary source
        telegram_max_retries: Attempts against the secondary source
    """

    def __init__(
        self,
        webhook_source: BaseIndicatorSource,
        telegram_source: BaseIndicatorSource,
        cache: Optional[ResultCache] = None,
        webhook_retry: Optional[RetryOrchestrator] = None,
        telegram_retry: Optional[RetryOrchestrator] = None,
        validator: Optional[CrossValidator] = None,
        max_retries: int = 3,
        telegram_max_retries: int = 1,
    ) -> None:
        """Initialize IndicatorPipeline.

        Args:
            webhook_source: Primary source agent.
            telegram_source: Secondary source agent.
            cache: Result cache. A 5 minute cache is created if None.
            webhook_retry: Retry orchestrator for the primary source.
            telegram_retry: Retry orchestrator for the secondary source. Each
                source gets its own so attempt records and logs name it.
            validator: Cross-validation engine.
            max_retries: Attempts against the primary source per request.
            telegram_max_retries: Attempts against the secondary source per request.
        """
        self.webhook_source = webhook_source
        self.telegram_source = telegram_source
        self.cache = cache or ResultCache()
        self.webhook_retry = webhook_retry or RetryOrchestrator(
            name=SourceName.WEBHOOK.value
        )
        self.telegram_retry = telegram_retry or RetryOrchestrator(
            name=SourceName.TELEGRAM.value
        )
        self.validator = validator or CrossValidator()
        self.max_retries = max_retries
        self.telegram_max_retries = telegram_max_retries

        self.coordinator = DualSourceCoordinator(
            webhook_operation=self.webhook_retry.wrap(
                self.webhook_source.extract, max_retries
            ),
            telegram_operation=self.telegram_retry.wrap(
                self.telegram_source.extract, telegram_max_retries
            ),
            validator=self.validator,
        )
        self.started_at = time.monotonic()
        self.logger = get_logger("pipeline")

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "IndicatorPipeline":
        """Build the full object graph from configuration."""
        webhook_source = WebPageSource(
            url=app_settings.page_url,
            navigation_timeout_ms=app_settings.playwright_timeout_ms,
            settle_wait_ms=app_settings.playwright_wait_ms,
        )
        telegram_source: BaseIndicatorSource
        if app_settings.telegram_transport == "mtproto":
            telegram_source = MtprotoChannelSource(
                api_id=app_settings.telegram_api_id,
                api_hash=app_settings.telegram_api_hash,
                session=app_settings.telegram_session,
                channel=app_settings.telegram_channel,
                message_limit=app_settings.telegram_message_limit,
            )
        else:
            telegram_source = TelegramChannelSource(
                bot_token=app_settings.telegram_bot_token,
                chat_id=app_settings.telegram_chat_id,
                message_limit=app_settings.telegram_message_limit,
                http_timeout=app_settings.http_timeout,
            )
        return cls(
            webhook_source=webhook_source,
            telegram_source=telegram_source,
            cache=ResultCache(ttl_ms=app_settings.cache_ttl_ms),
            webhook_retry=RetryOrchestrator(
                base_delay_ms=app_settings.retry_delay_ms,
                name=SourceName.WEBHOOK.value,
            ),
            telegram_retry=RetryOrchestrator(
                base_delay_ms=app_settings.retry_delay_ms,
                name=SourceName.TELEGRAM.value,
            ),
            max_retries=app_settings.max_retries,
            telegram_max_retries=app_settings.telegram_max_retries,
        )

    async def start(self) -> None:
        """Connect both sources.

        A source that cannot connect is logged and left disconnected; its
        extractions fail and the dual endpoint degrades to SINGLE_SOURCE.
        """
        for source in (self.webhook_source, self.telegram_source):
            try:
                await source.connect()
            except Exception as e:
                self.logger.warning(
                    "Source connection failed, continuing without it",
                    source=source.name,
                    error=str(e),
                )

    async def stop(self) -> None:
        for source in (self.webhook_source, self.telegram_source):
            try:
                await source.disconnect()
            except Exception as e:
                self.logger.error(
                    "Source disconnect failed",
                    source=source.name,
                    error=str(e),
                )

    async def __aenter__(self) -> "IndicatorPipeline":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def extract_webhook(self) -> dict[str, Any]:
        """Retried primary extraction as a response body."""
        self.logger.info("Webhook extraction requested")
        outcome = await self.webhook_retry.run(
            self.webhook_source.extract, self.max_retries
        )
        return outcome.to_dict()

    async def extract_telegram(self) -> dict[str, Any]:
        """Retried secondary extraction as a response body."""
        self.logger.info("Telegram extraction requested")
        outcome = await self.telegram_retry.run(
            self.telegram_source.extract, self.telegram_max_retries
        )
        return outcome.to_dict()

    async def extract_dual(self, use_cache: bool = True) -> dict[str, Any]:
        """Cross-validated extraction from both sources.

        Args:
            use_cache: Serve a fresh cached body instead of extracting.

        Returns:
            Published result body. A cached body has both per-source
            ``metadata.cached`` flags set and carries ``metadata.cache_age_ms``.
        """
        if use_cache:
            cached = self.cache.get()
            if cached is not None:
                cache_age_ms = self.cache.age()
                self.logger.info("Returning cached dual-source result", cache_age_ms=cache_age_ms)
                return {
                    **cached,
                    "metadata": {
                        **cached.get("metadata", {}),
                        "cached": {name.value: True for name in SourceName},
                        "cache_age_ms": cache_age_ms,
                    },
                }

        self.logger.info("Dual-source extraction requested", use_cache=use_cache)
        result = await self.coordinator.extract_dual()
        body = result.to_dict()

        if len(result.validation.sources_used) == 2:
            self.cache.set(body)
        else:
            self.logger.warning(
                "Degraded result not cached",
                validation_status=result.status.value,
            )

        return body

    def health(self) -> dict[str, Any]:
        """Liveness snapshot for the health endpoint and the CLI."""
        return {
            "status": "healthy",
            "uptime_seconds": round(time.monotonic() - self.started_at, 3),
            "cache_valid": self.cache.is_valid(),
            "cache_age_ms": self.cache.age(),
            "timestamp": utc_now_iso(),
            "sources": {
                SourceName.WEBHOOK.value: self._source_health(self.webhook_source),
                SourceName.TELEGRAM.value: self._source_health(self.telegram_source),
            },
        }

    @staticmethod
    def _source_health(source: BaseIndicatorSource) -> dict[str, Any]:
        return {
            **source.status(),
            "extractions": source.extraction_count,
            "failures": source.failure_count,
        }
