"""HTTP API exposing the indicator pipeline."""

from indicator_system.api.server import create_app

__all__ = ["create_app"]
