import pytest

from kme.config import config
from kme.framework import E2ENamespace, load_kube_clients, skip_unless_provider_is
from kme.logging_config import setup_logging


@pytest.fixture(scope="session")
def gke_only():
    skip_unless_provider_is("gke")


@pytest.fixture(scope="session")
def kube_clients(gke_only):
    setup_logging("e2e", log_file="e2e.log")
    return load_kube_clients()


@pytest.fixture()
def namespace(kube_clients):
    core_api, _ = kube_clients
    with E2ENamespace(core_api, prefix=config.namespace_prefix) as ns:
        yield ns.name
