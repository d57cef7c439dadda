"""
Metric gathering and ceiling evaluation for a single tick.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Sequence

from soakrunner.connectors.base import MetricSource
from soakrunner.core.errors import MetricFetchError
from soakrunner.models import Batch, MetricDefinition, MetricReading

logger = logging.getLogger(__name__)


class Gatherer:
    """
    Fetches every configured metric and checks it against its ceiling.

    Fetches for one tick run concurrently; the batch keeps configuration
    order and is only built once every fetch has completed.
    """

    def __init__(self, metrics: Sequence[MetricDefinition], source: MetricSource):
        self._metrics = tuple(metrics)
        self._source = source

    async def _read(self, metric: MetricDefinition) -> MetricReading:
        try:
            value = await self._source.fetch(metric.query)
        except MetricFetchError as exc:
            return MetricReading.failure(metric.name, str(exc))
        except Exception as exc:
            logger.warning(
                "Unexpected error fetching %s: %s: %s",
                metric.name,
                type(exc).__name__,
                exc,
            )
            return MetricReading.failure(metric.name, f"{type(exc).__name__}: {exc}")
        return MetricReading.success(metric.name, value)

    async def gather_and_check(self, now: datetime) -> tuple[Batch, bool]:
        readings = await asyncio.gather(*(self._read(m) for m in self._metrics))

        within = True
        for metric, reading in zip(self._metrics, readings):
            if not reading.exceeds(metric.ceiling):
                continue
            within = False
            if reading.ok:
                logger.warning(
                    " metric(%s): %s > %s", metric.name, reading.value, metric.ceiling
                )
            else:
                logger.warning(
                    " metric(%s): fetch failed: %s", metric.name, reading.error
                )

        batch = Batch(timestamp=now, readings=tuple(readings), within_ceiling=within)
        return batch, within
