"""Lifecycle base class shared by the indicator source agents."""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger


class BaseAgent(ABC):
    """
    Named, long-lived agent with an explicit connect/disconnect lifecycle.

    Agents are created once per process and connected by their owner (the
    pipeline), or used directly as async context managers:

        async with TelegramChannelSource(...) as source:
            outcome = await source.extract()

    Attributes:
        agent_id: Random id, distinguishes restarts in the logs
        name: Agent name, also the loguru ``component``
        logger: Loguru logger bound with the agent's name and id
        connected_at: UTC time of the last successful connect(), None when disconnected
    """

    def __init__(self, name: str):
        self.agent_id = uuid.uuid4().hex[:8]
        self.name = name
        self.logger = logger.bind(component=name, agent_id=self.agent_id)
        self.connected_at: Optional[datetime] = None

    @property
    def connected(self) -> bool:
        return self.connected_at is not None

    async def connect(self) -> None:
        """Acquire long-lived resources. Subclasses call this last, on success."""
        self.connected_at = datetime.now(timezone.utc)
        self.logger.info("Agent connected")

    async def disconnect(self) -> None:
        """Release whatever connect() acquired. Safe to call when not connected."""
        if self.connected:
            self.logger.info("Agent disconnected")
        self.connected_at = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    def status(self) -> dict[str, Any]:
        """Connection snapshot for health reporting."""
        return {
            "agent_id": self.agent_id,
            "connected": self.connected,
            "connected_since": (
                self.connected_at.isoformat().replace("+00:00", "Z")
                if self.connected_at
                else None
            ),
            "capabilities": self.get_capabilities(),
        }

    @abstractmethod
    def get_capabilities(self) -> list[str]:
        """Capability identifiers reported by the health endpoint."""
