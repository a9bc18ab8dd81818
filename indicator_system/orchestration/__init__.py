"""Extraction orchestration: per-source retries and dual-source coordination."""

from indicator_system.orchestration.coordinator import (
    DualSourceCoordinator,
    normalize_outcome,
)
from indicator_system.orchestration.retry import (
    AttemptRecord,
    RetryOrchestrator,
    RetryState,
)

__all__ = [
    "AttemptRecord",
    "DualSourceCoordinator",
    "RetryOrchestrator",
    "RetryState",
    "normalize_outcome",
]
