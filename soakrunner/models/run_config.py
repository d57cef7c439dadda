"""
Run Configuration Models

Defines Pydantic models for a soak run:
- Metric definitions (name, Prometheus query, ceiling)
- Run timing (start delay, test duration, polling interval)
- Environment location (compose working directory)

Keys follow the camelCase YAML layout (``startDelay``, ``maxValue``...);
snake_case field names are accepted as well.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MetricDefinition(BaseModel):
    """A named, thresholded metric sampled on every tick."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Metric name (unique per run)")
    query: str = Field(..., min_length=1, description="PromQL instant query")
    ceiling: float = Field(
        ..., alias="maxValue", description="Maximum allowed value (inclusive)"
    )


class RunConfig(BaseModel):
    """
    Configuration for a single soak run.

    ``interval`` is the polling interval between ticks (``timeout`` in the
    YAML file).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    host: str = Field(..., min_length=1, description="Prometheus base URL")
    metrics: List[MetricDefinition] = Field(
        ..., min_length=1, description="Ordered metrics to sample"
    )
    start_delay: float = Field(
        0.0, ge=0, alias="startDelay", description="Warm-up delay (seconds)"
    )
    test_duration: float = Field(
        ..., ge=0, alias="testDuration", description="Total test duration (seconds)"
    )
    interval: float = Field(
        ..., gt=0, alias="timeout", description="Polling interval (seconds)"
    )
    work_dir: str = Field(
        ..., min_length=1, alias="workDir", description="Compose working directory"
    )
    compose_file: Optional[str] = Field(
        None, alias="composeFile", description="Compose file, relative to workDir"
    )
    project_name: Optional[str] = Field(
        None, alias="projectName", description="Compose project name"
    )

    @field_validator("host")
    @classmethod
    def _strip_host(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("metrics")
    @classmethod
    def _unique_names(cls, v: List[MetricDefinition]) -> List[MetricDefinition]:
        seen: set[str] = set()
        for metric in v:
            if metric.name in seen:
                raise ValueError(f"duplicate metric name: {metric.name}")
            seen.add(metric.name)
        return v
