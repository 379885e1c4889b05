import re
from pathlib import Path
from types import SimpleNamespace

import pytest
from kubernetes import client
from kubernetes.config import ConfigException

from kme.framework import E2ENamespace, load_kube_clients, skip_unless_provider_is

E2E_TESTS_DIR = Path(__file__).parent / "e2e"


def test_skip_unless_provider_is_when_provider_matches_does_not_skip(mocker):
    mocker.patch("kme.framework.config", SimpleNamespace(kube_provider="gke"))
    skip_unless_provider_is("gke")


def test_skip_unless_provider_is_when_provider_differs_skips(mocker):
    mocker.patch("kme.framework.config", SimpleNamespace(kube_provider="aws"))
    with pytest.raises(pytest.skip.Exception):
        skip_unless_provider_is("gke")


def test_e2e_namespace_creates_and_deletes_unique_namespace(mocker):
    core_api = mocker.MagicMock()
    with E2ENamespace(core_api, prefix="stackdriver-monitoring") as ns:
        assert re.fullmatch(r"stackdriver-monitoring-[a-z0-9]{5}", ns.name)
        body = core_api.create_namespace.call_args.kwargs["body"]
        assert body.metadata.name == ns.name
    core_api.delete_namespace.assert_called_once_with(name=ns.name)


def test_e2e_namespace_when_delete_fails_does_not_raise(mocker):
    core_api = mocker.MagicMock()
    core_api.delete_namespace.side_effect = client.ApiException(status=500)
    with E2ENamespace(core_api, prefix="e2e"):
        pass


def test_load_kube_clients_falls_back_to_incluster_config(mocker):
    mocker.patch(
        "kme.framework.kube_config.load_kube_config",
        side_effect=ConfigException("Invalid kube-config file. No configuration found."),
    )
    incluster = mocker.patch("kme.framework.kube_config.load_incluster_config")
    core_api, apps_api = load_kube_clients()
    incluster.assert_called_once()
    assert isinstance(core_api, client.CoreV1Api)
    assert isinstance(apps_api, client.AppsV1Api)


def test_e2e_suite_when_provider_unset_is_skipped_before_touching_cluster(pytester, monkeypatch):
    monkeypatch.delenv("KUBE_PROVIDER", raising=False)
    monkeypatch.setenv("KUBECONFIG", "/nonexistent")

    result = pytester.runpytest_subprocess(str(E2E_TESTS_DIR), "-p", "no:cacheprovider")

    result.assert_outcomes(skipped=1)
    assert not (pytester.path / "e2e.log").exists()
