"""Validators reconciling readings from independent sources."""

from indicator_system.agents.validators.cross_validator import (
    DIVERGENCE_THRESHOLDS,
    MAX_DIVERGENCE,
    CrossValidator,
    calculate_divergence,
    determine_validation_status,
    generate_recommendation,
    is_valid_reading,
)

__all__ = [
    "DIVERGENCE_THRESHOLDS",
    "MAX_DIVERGENCE",
    "CrossValidator",
    "calculate_divergence",
    "determine_validation_status",
    "generate_recommendation",
    "is_valid_reading",
]
