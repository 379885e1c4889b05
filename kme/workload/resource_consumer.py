import logging
from typing import cast

from kubernetes import client

from kme.config import ConsumerConfig
from kme.wait import poll

APP_LABEL = "app"
CONSUMER_PORT = 8080
REPLICAS_POLL_INTERVAL_SECONDS = 20
REPLICAS_TIMEOUT_SECONDS = 15 * 60
CONSUME_RETRY_INTERVAL_SECONDS = 5
CONSUME_RETRY_TIMEOUT_SECONDS = 60
DEFAULT_CONSUMPTION_SECONDS = 15 * 60

logger = logging.getLogger(__name__)


class ResourceConsumer:
    """A Deployment running the resource-consumer image, driven through its HTTP API.

    The consumer burns the requested CPU and memory for a given duration, which gives the
    monitoring pipeline a container with a known load to report on. Requests are sent through
    the API server service proxy, so no network access to the pods is needed.
    """

    api_instance: client.CoreV1Api
    apps_api_instance: client.AppsV1Api
    namespace: str
    consumer: ConsumerConfig

    def __init__(
        self,
        core_api: client.CoreV1Api,
        apps_api: client.AppsV1Api,
        namespace: str,
        consumer: ConsumerConfig,
    ) -> None:
        if consumer.kind != "Deployment":
            raise ValueError(f"unsupported resource consumer kind: {consumer.kind}")
        self.api_instance = core_api
        self.apps_api_instance = apps_api
        self.namespace = namespace
        self.consumer = consumer

    @property
    def name(self) -> str:
        return self.consumer.name

    def __enter__(self) -> "ResourceConsumer":
        try:
            self.create()
        except Exception:
            self.clean_up()
            raise
        return self

    def __exit__(self, *exc_info) -> None:
        self.clean_up()

    def create(self) -> None:
        logger.info(f"Creating {self.consumer.kind} {self.namespace}/{self.name}")
        self.apps_api_instance.create_namespaced_deployment(
            namespace=self.namespace, body=self._deployment()
        )
        self.api_instance.create_namespaced_service(namespace=self.namespace, body=self._service())

    def wait_for_replicas(self, replicas: int) -> None:
        """Blocks until `replicas` pods of the deployment are ready, raising TimeoutError otherwise."""

        def replicas_ready() -> bool:
            deployment = cast(
                client.V1Deployment,
                self.apps_api_instance.read_namespaced_deployment(
                    name=self.name, namespace=self.namespace
                ),
            )
            ready_replicas = deployment.status.ready_replicas or 0
            logger.info(f"{self.name}: {ready_replicas}/{replicas} replicas ready")
            return ready_replicas == replicas

        poll(
            REPLICAS_POLL_INTERVAL_SECONDS,
            REPLICAS_TIMEOUT_SECONDS,
            replicas_ready,
            description=f"{self.name} has {replicas} ready replicas",
        )

    def start(self, duration_seconds: int = DEFAULT_CONSUMPTION_SECONDS) -> None:
        """Asks the consumer to generate the configured CPU and memory load."""
        self.consume_cpu(self.consumer.cpu_used, duration_seconds)
        self.consume_mem(self.consumer.memory_used, duration_seconds)

    def consume_cpu(self, millicores: int, duration_seconds: int) -> None:
        logger.info(f"{self.name}: consuming {millicores}m CPU for {duration_seconds}s")
        self._consume("ConsumeCPU", millicores=millicores, durationSec=duration_seconds)

    def consume_mem(self, megabytes: int, duration_seconds: int) -> None:
        logger.info(f"{self.name}: consuming {megabytes}MB of memory for {duration_seconds}s")
        self._consume("ConsumeMem", megabytes=megabytes, durationSec=duration_seconds)

    def clean_up(self) -> None:
        """Deletes the deployment and its service. Failures are logged so they never hide a test result."""
        try:
            self.apps_api_instance.delete_namespaced_deployment(
                name=self.name, namespace=self.namespace, propagation_policy="Foreground"
            )
            logger.info(f"Deleted deployment {self.namespace}/{self.name}")
        except client.ApiException as e:
            logger.error(f"Failed to delete deployment {self.name}: {e}")

        try:
            self.api_instance.delete_namespaced_service(name=self.name, namespace=self.namespace)
            logger.info(f"Deleted service {self.namespace}/{self.name}")
        except client.ApiException as e:
            logger.error(f"Failed to delete service {self.name}: {e}")

    def _consume(self, endpoint: str, **params: int) -> None:
        # The service can lag behind the ready pods, so proxy errors are retried for a short while.
        def request_accepted() -> bool:
            try:
                self.api_instance.api_client.call_api(
                    "/api/v1/namespaces/{namespace}/services/{name}/proxy/{path}",
                    "POST",
                    path_params={"namespace": self.namespace, "name": self.name, "path": endpoint},
                    query_params=[(key, str(value)) for key, value in params.items()],
                    response_type="str",
                    auth_settings=["BearerToken"],
                    _return_http_data_only=True,
                )
            except client.ApiException as e:
                logger.error(f"{endpoint} request to {self.name} failed: {e.status} {e.reason}")
                return False
            return True

        poll(
            CONSUME_RETRY_INTERVAL_SECONDS,
            CONSUME_RETRY_TIMEOUT_SECONDS,
            request_accepted,
            description=f"{endpoint} accepted by {self.name}",
        )

    def _deployment(self) -> client.V1Deployment:
        labels = {APP_LABEL: self.name}
        resources = client.V1ResourceRequirements(
            requests={"cpu": f"{self.consumer.cpu_limit}m", "memory": f"{self.consumer.memory_limit}Mi"},
            limits={"cpu": f"{self.consumer.cpu_limit}m", "memory": f"{self.consumer.memory_limit}Mi"},
        )
        container = client.V1Container(
            name=self.name,
            image=self.consumer.image,
            ports=[client.V1ContainerPort(container_port=CONSUMER_PORT)],
            resources=resources,
        )
        return client.V1Deployment(
            metadata=client.V1ObjectMeta(name=self.name, labels=labels),
            spec=client.V1DeploymentSpec(
                replicas=self.consumer.replicas,
                selector=client.V1LabelSelector(match_labels=labels),
                template=client.V1PodTemplateSpec(
                    metadata=client.V1ObjectMeta(labels=labels),
                    spec=client.V1PodSpec(containers=[container]),
                ),
            ),
        )

    def _service(self) -> client.V1Service:
        return client.V1Service(
            metadata=client.V1ObjectMeta(name=self.name, labels={APP_LABEL: self.name}),
            spec=client.V1ServiceSpec(
                selector={APP_LABEL: self.name},
                ports=[client.V1ServicePort(port=CONSUMER_PORT, target_port=CONSUMER_PORT)],
            ),
        )
