"""
Append-only sample log and the end-of-run report.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from soakrunner.models import Batch, RunReport, StopReason

logger = logging.getLogger(__name__)


class Reporter:
    def __init__(self) -> None:
        self._batches: list[Batch] = []

    def record(self, batch: Batch) -> None:
        self._batches.append(batch)

    @property
    def batches(self) -> tuple[Batch, ...]:
        return tuple(self._batches)

    def __len__(self) -> int:
        return len(self._batches)

    def dump(self) -> list[str]:
        """One rendered line per batch, in recording order."""
        return [batch.render() for batch in self._batches]

    def report(self, stop_reason: Optional[StopReason] = None) -> None:
        logger.info("=[ report ]==================")
        if stop_reason is not None:
            logger.info("  stop reason: %s", stop_reason.value)
        for line in self.dump():
            logger.info("  %s", line)
        logger.info("=[ end ]=====================")

    def to_report(self, stop_reason: Optional[StopReason] = None) -> RunReport:
        return RunReport(stop_reason=stop_reason, batches=list(self._batches))

    def write_json(
        self, path: str | Path, stop_reason: Optional[StopReason] = None
    ) -> Path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(
            self.to_report(stop_reason).model_dump_json(indent=2), encoding="utf-8"
        )
        logger.info("Report written to %s", out)
        return out
