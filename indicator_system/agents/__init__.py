"""Indicator agents: sources and validators."""

from indicator_system.agents.base_agent import BaseAgent

__all__ = ["BaseAgent"]
