"""Dual-source indicator monitor with cross-validation."""

__version__ = "1.0.0"
