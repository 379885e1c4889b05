import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

from kme.config import ExpectedMetricsConfiguration
from kme.monitoring.sample import MetricSample, MetricSeries

logger = logging.getLogger(__name__)


class MetricsBackend(Protocol):
    def fetch_time_series(
        self, metric: str, container_name: str, start: datetime, end: datetime
    ) -> list[MetricSeries]: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def latest_sample(series: MetricSeries) -> MetricSample:
    """Returns the sample with the latest interval end time (ties keep the first one seen)."""
    if not series.samples:
        raise ValueError(f"series of {series.metric} for {series.container_name} has no samples")

    latest = series.samples[0]
    for sample in series.samples[1:]:
        if sample.end_time > latest.end_time:
            latest = sample
    return latest


def current_utilization(series: list[MetricSeries]) -> float:
    """Sums the most recent utilization sample of every series."""
    return sum(latest_sample(s).value for s in series if s.samples)


def utilization_within_tolerance(utilization: float, expected: ExpectedMetricsConfiguration) -> bool:
    """
    utilization is a fraction of the CPU limit, so it is scaled back to millicores before being
    compared with the load the consumer was asked to generate.
    """
    used = utilization * expected.cpu_limit
    return abs(used - expected.cpu_used) <= expected.tolerance * expected.cpu_used


def check_for_metrics(
    backend: MetricsBackend,
    container_name: str,
    start: datetime,
    expected: ExpectedMetricsConfiguration,
    now: Callable[[], datetime] = utc_now,
) -> Callable[[], bool]:
    """
    check_for_metrics builds the condition polled by the end-to-end test.

    Every call re-fetches all the expected metrics over [start, now) and holds only when each of
    them has at least one series and the utilization metric matches the generated CPU load.
    Fetch errors propagate to the caller untouched.
    """
    if expected.utilization_metric not in expected.metrics:
        raise ValueError(f"utilization metric {expected.utilization_metric} is not an expected metric")

    def metrics_exported() -> bool:
        end = now()
        missing: list[str] = []
        correct_utilization = False

        for metric in expected.metrics:
            series = backend.fetch_time_series(metric, container_name, start, end)
            if not any(s.samples for s in series):
                missing.append(metric)

            if metric == expected.utilization_metric:
                utilization = current_utilization(series)
                correct_utilization = utilization_within_tolerance(utilization, expected)
                if not correct_utilization:
                    logger.warning(
                        f"{metric}: utilization {utilization:.3f} of {expected.cpu_limit}m limit "
                        f"is {utilization * expected.cpu_limit:.1f}m, expected "
                        f"{expected.cpu_used}m ±{expected.tolerance:.0%}"
                    )

        found = len(expected.metrics) - len(missing)
        logger.info(f"{found}/{len(expected.metrics)} metrics exported for {container_name}")
        if missing:
            logger.warning(f"Metrics without data yet: {', '.join(missing)}")

        return not missing and correct_utilization

    return metrics_exported
