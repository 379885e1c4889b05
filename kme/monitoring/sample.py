from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class MetricSample:
    end_time: datetime
    value: float


@dataclass(frozen=True)
class MetricSeries:
    """One time series of a metric, for a single monitored container."""

    metric: str
    container_name: str
    samples: list[MetricSample] = field(default_factory=list)
