"""
Per-tick unit of work: gather, record, and request a stop on breach.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from soakrunner.core.gatherer import Gatherer
from soakrunner.core.reporter import Reporter
from soakrunner.models import Batch


class Eventer:
    def __init__(
        self,
        gatherer: Gatherer,
        reporter: Reporter,
        stopper: Optional[Callable[[], object]] = None,
    ) -> None:
        self.gatherer = gatherer
        self.reporter = reporter
        self.stopper = stopper

    async def fire(self, now: datetime) -> Batch:
        batch, ok = await self.gatherer.gather_and_check(now)
        # Recorded before the stop request so the breaching tick is reported.
        self.reporter.record(batch)
        if not ok and self.stopper is not None:
            self.stopper()
        return batch
