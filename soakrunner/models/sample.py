"""
Sample Models

Defines Pydantic models for the data gathered during a run: individual metric
readings, per-tick batches, and the final run report.
"""

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Value shown for failed readings in the legacy-compatible JSON field.
FETCH_FAILED_SENTINEL = -1


class RunState(str, Enum):
    """Scheduler run state."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOP_REQUESTED = "stop_requested"
    STOPPED = "stopped"


class StopReason(str, Enum):
    """Why the polling loop ended."""

    DEADLINE = "deadline"
    BREACH = "breach"


class MetricReading(BaseModel):
    """
    Result of fetching one metric: either a value or a failure reason.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Metric name")
    value: Optional[float] = Field(None, description="Fetched value")
    error: Optional[str] = Field(None, description="Fetch failure reason")

    @classmethod
    def success(cls, name: str, value: float) -> "MetricReading":
        return cls(name=name, value=float(value))

    @classmethod
    def failure(cls, name: str, error: str) -> "MetricReading":
        return cls(name=name, error=error or "unknown error")

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    def exceeds(self, ceiling: float) -> bool:
        """A failed reading always counts as exceeding its ceiling."""
        if not self.ok:
            return True
        return self.value > ceiling

    @computed_field  # type: ignore[prop-decorator]
    @property
    def legacy_value(self) -> float:
        return self.value if self.ok else FETCH_FAILED_SENTINEL

    def render(self) -> str:
        if not self.ok:
            return f"{self.name}=ERR({self.error})"
        return f"{self.name}={_format_number(self.value)}"


class Batch(BaseModel):
    """One timestamped set of readings taken in a single tick."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="Tick time")
    readings: Tuple[MetricReading, ...] = Field(
        ..., description="Readings in configuration order"
    )
    within_ceiling: bool = Field(..., description="All readings within ceiling")

    def render(self) -> str:
        values = ", ".join(r.render() for r in self.readings)
        return f"{self.timestamp.isoformat(timespec='seconds')} [{values}]"


class RunReport(BaseModel):
    """Serializable summary of a finished run."""

    stop_reason: Optional[StopReason] = Field(None, description="Why the run ended")
    batches: List[Batch] = Field(default_factory=list, description="Samples")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def breaches(self) -> int:
        return sum(1 for b in self.batches if not b.within_ceiling)


def _format_number(value: Optional[float]) -> str:
    if value is None or math.isnan(value):
        return "nan"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"
