import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

# Container metrics exported by the GKE monitoring agent:
# https://cloud.google.com/monitoring/api/metrics_gcp#gcp-container
STACKDRIVER_METRICS = (
    "uptime",
    "memory/bytes_total",
    "memory/bytes_used",
    "cpu/reserved_cores",
    "cpu/usage_time",
    "memory/page_fault_count",
    "disk/bytes_used",
    "disk/bytes_total",
    "cpu/utilization",
)

UTILIZATION_METRIC = "cpu/utilization"

DEFAULT_RESOURCE_CONSUMER_IMAGE = "registry.k8s.io/e2e-test-images/resource-consumer:1.13"


@dataclass(frozen=True)
class ExpectedMetricsConfiguration:
    """
    What a healthy export looks like for the synthetic workload.

    cpu_used and cpu_limit are millicores; tolerance is relative to cpu_used.
    """

    metrics: tuple[str, ...] = STACKDRIVER_METRICS
    utilization_metric: str = UTILIZATION_METRIC
    cpu_used: int = 100
    cpu_limit: int = 200
    tolerance: float = 0.25


@dataclass(frozen=True)
class ConsumerConfig:
    """Shape of the resource-consumer deployment. Memory values are megabytes."""

    name: str = "resource-consumer"
    kind: str = "Deployment"
    replicas: int = 1
    cpu_used: int = 100
    memory_used: int = 64
    disk_used: int = 0
    cpu_limit: int = 200
    memory_limit: int = 200
    image: str = os.getenv("RESOURCE_CONSUMER_IMAGE", DEFAULT_RESOURCE_CONSUMER_IMAGE)


@dataclass(frozen=True)
class E2EConfig:
    """
    Immutable run configuration, read from the environment (or a .env file).
    """

    kube_provider: str = os.getenv("KUBE_PROVIDER", "")
    project_id: str = os.getenv("GCP_PROJECT_ID", "")
    cluster_name: str | None = os.getenv("CLUSTER_NAME") or None
    poll_interval: float = float(os.getenv("POLL_INTERVAL_SECONDS", "5"))
    poll_timeout: float = float(os.getenv("POLL_TIMEOUT_SECONDS", str(7 * 60)))
    namespace_prefix: str = os.getenv("NAMESPACE_PREFIX", "stackdriver-monitoring")
    expected: ExpectedMetricsConfiguration = field(default_factory=ExpectedMetricsConfiguration)
    consumer: ConsumerConfig = field(default_factory=ConsumerConfig)


config = E2EConfig()
