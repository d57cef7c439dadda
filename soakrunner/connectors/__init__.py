"""
External collaborators: monitoring backend and environment lifecycle.
"""

from .base import EnvManager, MetricSource
from .docker_compose import DockerComposeEnv
from .prometheus import PrometheusMetricSource, parse_query_result

__all__ = [
    "EnvManager",
    "MetricSource",
    "DockerComposeEnv",
    "PrometheusMetricSource",
    "parse_query_result",
]
