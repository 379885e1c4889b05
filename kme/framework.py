import logging
import random
import string

import pytest
from kubernetes import client
from kubernetes import config as kube_config

from kme.config import config

NAMESPACE_SUFFIX_LENGTH = 5

logger = logging.getLogger(__name__)


def skip_unless_provider_is(*providers: str) -> None:
    """Skips the calling test unless the cluster under test runs on one of `providers`."""
    if config.kube_provider not in providers:
        pytest.skip(
            f"Only supported for providers {list(providers)} (not {config.kube_provider or 'unset'})"
        )


def load_kube_clients() -> tuple[client.CoreV1Api, client.AppsV1Api]:
    """Loads the local kubeconfig, falling back to the in-cluster service account."""
    try:
        kube_config.load_kube_config()
    except kube_config.ConfigException:
        kube_config.load_incluster_config()
    return client.CoreV1Api(), client.AppsV1Api()


def random_suffix(length: int = NAMESPACE_SUFFIX_LENGTH) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


class E2ENamespace:
    """A throwaway namespace holding everything one test creates."""

    api_instance: client.CoreV1Api
    name: str

    def __init__(self, core_api: client.CoreV1Api, prefix: str) -> None:
        self.api_instance = core_api
        self.name = f"{prefix}-{random_suffix()}"

    def __enter__(self) -> "E2ENamespace":
        self.api_instance.create_namespace(
            body=client.V1Namespace(metadata=client.V1ObjectMeta(name=self.name))
        )
        logger.info(f"Created namespace {self.name}")
        return self

    def __exit__(self, *exc_info) -> None:
        try:
            self.api_instance.delete_namespace(name=self.name)
            logger.info(f"Deleted namespace {self.name}")
        except client.ApiException as e:
            logger.error(f"Failed to delete namespace {self.name}: {e}")
