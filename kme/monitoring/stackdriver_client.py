import logging
from datetime import datetime

import google.auth
from google.cloud import monitoring_v3

from kme.monitoring.sample import MetricSample, MetricSeries

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
CONTAINER_METRIC_PREFIX = "container.googleapis.com/container/"

logger = logging.getLogger(__name__)


def create_metric_filter(metric: str, container_name: str, cluster_name: str | None = None) -> str:
    metric_filter = (
        f'metric.type="{CONTAINER_METRIC_PREFIX}{metric}" AND '
        f'resource.label.container_name="{container_name}"'
    )
    if cluster_name:
        metric_filter += f' AND resource.label.cluster_name="{cluster_name}"'
    return metric_filter


def full_project_name(project_id: str) -> str:
    return f"projects/{project_id}"


class StackdriverClient:
    """Adapter over the Cloud Monitoring API, read-only.

    Errors raised by the underlying client (google.api_core.exceptions.GoogleAPICallError)
    are not caught here: a failed fetch is fatal for the caller.
    """

    metric_service: monitoring_v3.MetricServiceClient
    project_id: str
    cluster_name: str | None

    def __init__(
        self,
        metric_service: monitoring_v3.MetricServiceClient,
        project_id: str,
        cluster_name: str | None = None,
    ) -> None:
        self.metric_service = metric_service
        self.project_id = project_id
        self.cluster_name = cluster_name

    @classmethod
    def from_default_credentials(
        cls, project_id: str, cluster_name: str | None = None
    ) -> "StackdriverClient":
        """Builds a client from Application Default Credentials.

        When project_id is empty the project bound to the credentials is used.
        """
        credentials, default_project = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
        project_id = project_id or default_project
        if not project_id:
            raise ValueError("no GCP project id configured and none found in the default credentials")

        logger.info(f"Using Cloud Monitoring project {project_id}")
        return cls(
            monitoring_v3.MetricServiceClient(credentials=credentials),
            project_id=project_id,
            cluster_name=cluster_name,
        )

    def fetch_time_series(
        self, metric: str, container_name: str, start: datetime, end: datetime
    ) -> list[MetricSeries]:
        """Returns every series of `metric` for `container_name` with points in [start, end)."""
        results = self.metric_service.list_time_series(
            request={
                "name": full_project_name(self.project_id),
                "filter": create_metric_filter(metric, container_name, self.cluster_name),
                "interval": monitoring_v3.TimeInterval(start_time=start, end_time=end),
                "view": monitoring_v3.ListTimeSeriesRequest.TimeSeriesView.FULL,
            }
        )

        series = [
            MetricSeries(
                metric=metric,
                container_name=container_name,
                samples=[self._to_sample(point) for point in time_series.points],
            )
            for time_series in results
        ]
        logger.debug(f"{metric}: fetched {len(series)} series for {container_name}")
        return series

    def _to_sample(self, point: monitoring_v3.Point) -> MetricSample:
        if "double_value" in point.value:
            value = point.value.double_value
        else:
            value = float(point.value.int64_value)
        return MetricSample(end_time=point.interval.end_time, value=value)
