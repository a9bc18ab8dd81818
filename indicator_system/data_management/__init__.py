"""Data management package for the indicator system.

Provides:
- ResultCache: single-slot, TTL-bound cache of the last combined extraction
- schemas: readings, extraction outcomes and published results
"""

from indicator_system.data_management.result_cache import CacheEntry, ResultCache

__all__ = [
    "CacheEntry",
    "ResultCache",
]
