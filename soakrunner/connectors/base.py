"""
Collaborator interfaces used by the run scheduler.

Tests substitute fakes implementing the same methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class MetricSource(ABC):
    """Produces the current value of a metric query."""

    @abstractmethod
    async def fetch(self, query: str) -> float:
        """
        Return the current numeric value for ``query``.

        Raises:
            MetricFetchError: If no single value can be produced.
        """


class EnvManager(ABC):
    """Brings the environment under test up and down."""

    @abstractmethod
    async def start(self) -> None:
        """Raises EnvLifecycleError on failure."""

    @abstractmethod
    async def stop(self) -> None:
        """Raises EnvLifecycleError on failure."""
