"""
Exception hierarchy for soak runs.

Fetch errors are absorbed by the gatherer and surface only in the report.
Config and lifecycle errors propagate to the run driver, which aborts the run.
"""

from __future__ import annotations

from typing import Any, Optional


class SoakRunnerError(Exception):
    """Base exception for all soakrunner errors."""

    def __init__(self, message: str, *, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def __str__(self) -> str:
        return self.message


class ConfigError(SoakRunnerError):
    """Run configuration could not be read or is invalid."""


class MetricFetchError(SoakRunnerError):
    """A metric value could not be produced by the monitoring backend."""


class EnvLifecycleError(SoakRunnerError):
    """Starting or stopping the managed environment failed."""

    def __init__(
        self,
        message: str,
        *,
        returncode: Optional[int] = None,
        stderr: str = "",
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, context=context)
        self.returncode = returncode
        self.stderr = stderr
