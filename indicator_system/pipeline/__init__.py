"""Pipeline wiring sources, retries, cross-validation and the result cache.

- IndicatorPipeline: the single entry point used by the API and the CLI
"""

from indicator_system.pipeline.indicator_pipeline import IndicatorPipeline

__all__ = ["IndicatorPipeline"]
