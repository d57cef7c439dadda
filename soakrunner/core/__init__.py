"""
Run scheduling core: gathering, reporting, and the polling loop.
"""

from .errors import ConfigError, EnvLifecycleError, MetricFetchError, SoakRunnerError
from .eventer import Eventer
from .gatherer import Gatherer
from .reporter import Reporter
from .scheduler import Scheduler

__all__ = [
    # Errors
    "SoakRunnerError",
    "ConfigError",
    "EnvLifecycleError",
    "MetricFetchError",
    # Run components
    "Eventer",
    "Gatherer",
    "Reporter",
    "Scheduler",
]
