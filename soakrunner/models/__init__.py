"""
Data models for soak runs.
"""

from .run_config import MetricDefinition, RunConfig
from .sample import (
    FETCH_FAILED_SENTINEL,
    Batch,
    MetricReading,
    RunReport,
    RunState,
    StopReason,
)

__all__ = [
    # Configuration
    "MetricDefinition",
    "RunConfig",
    # Samples
    "FETCH_FAILED_SENTINEL",
    "Batch",
    "MetricReading",
    "RunReport",
    "RunState",
    "StopReason",
]
