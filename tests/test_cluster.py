from __future__ import annotations

from unittest.mock import MagicMock, PropertyMock, patch

import pytest
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException
from urllib3.exceptions import MaxRetryError, ProtocolError

from stepwatch.cluster import PodInspector
from stepwatch.errors import ClusterApiError

from .conftest import POD_NAME, make_pod, running


@pytest.fixture()
def core_api() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def inspector(core_api: MagicMock) -> PodInspector:
    return PodInspector(core_api, namespace="ci")


class TestGetPod:
    def test_reads_namespaced_pod(
        self, inspector: PodInspector, core_api: MagicMock
    ) -> None:
        pod = make_pod([running("build")])
        core_api.read_namespaced_pod.return_value = pod

        assert inspector.get_pod(POD_NAME) is pod
        core_api.read_namespaced_pod.assert_called_once_with(POD_NAME, "ci")

    def test_api_error(self, inspector: PodInspector, core_api: MagicMock) -> None:
        core_api.read_namespaced_pod.side_effect = ApiException(
            status=404, reason="Not Found"
        )
        with pytest.raises(ClusterApiError, match="ci/pipeline-pod"):
            inspector.get_pod(POD_NAME)

    def test_transport_error(
        self, inspector: PodInspector, core_api: MagicMock
    ) -> None:
        core_api.read_namespaced_pod.side_effect = MaxRetryError(None, "/api")
        with pytest.raises(ClusterApiError):
            inspector.get_pod(POD_NAME)


class TestGetLogs:
    def test_follows_with_timestamps(
        self, inspector: PodInspector, core_api: MagicMock
    ) -> None:
        response = core_api.read_namespaced_pod_log.return_value
        response.data = b"2024-05-01T12:00:01Z hi\n"

        logs = inspector.get_logs(POD_NAME, "build")

        assert logs == "2024-05-01T12:00:01Z hi\n"
        core_api.read_namespaced_pod_log.assert_called_once_with(
            name=POD_NAME,
            namespace="ci",
            container="build",
            follow=True,
            timestamps=True,
            _preload_content=False,
        )
        response.release_conn.assert_called_once_with()

    def test_invalid_utf8_is_replaced(
        self, inspector: PodInspector, core_api: MagicMock
    ) -> None:
        response = core_api.read_namespaced_pod_log.return_value
        response.data = b"2024-05-01T12:00:01Z \xff\xfe binary\n"

        logs = inspector.get_logs(POD_NAME, "build")

        assert logs == "2024-05-01T12:00:01Z \ufffd\ufffd binary\n"
        response.release_conn.assert_called_once_with()

    def test_api_error(self, inspector: PodInspector, core_api: MagicMock) -> None:
        core_api.read_namespaced_pod_log.side_effect = ApiException(status=500)
        with pytest.raises(ClusterApiError, match="container build"):
            inspector.get_logs(POD_NAME, "build")

    def test_stream_broken_while_reading(
        self, inspector: PodInspector, core_api: MagicMock
    ) -> None:
        response = MagicMock()
        type(response).data = PropertyMock(side_effect=ProtocolError("reset"))
        core_api.read_namespaced_pod_log.return_value = response

        with pytest.raises(ClusterApiError, match="reset"):
            inspector.get_logs(POD_NAME, "build")
        response.release_conn.assert_called_once_with()


class TestFromEnvironment:
    @patch("stepwatch.cluster.client.CoreV1Api")
    @patch("stepwatch.cluster.config.load_kube_config")
    @patch("stepwatch.cluster.config.load_incluster_config")
    def test_in_cluster(
        self, incluster: MagicMock, kubeconfig: MagicMock, core_cls: MagicMock
    ) -> None:
        inspector = PodInspector.from_environment("ci")
        incluster.assert_called_once_with()
        kubeconfig.assert_not_called()
        assert inspector.namespace == "ci"
        core_cls.assert_called_once_with()

    @patch("stepwatch.cluster.client.CoreV1Api")
    @patch("stepwatch.cluster.config.load_kube_config")
    @patch(
        "stepwatch.cluster.config.load_incluster_config",
        side_effect=ConfigException("not in a cluster"),
    )
    def test_falls_back_to_kubeconfig(
        self, incluster: MagicMock, kubeconfig: MagicMock, core_cls: MagicMock
    ) -> None:
        PodInspector.from_environment()
        kubeconfig.assert_called_once_with()

    @patch(
        "stepwatch.cluster.config.load_kube_config",
        side_effect=ConfigException("no kubeconfig"),
    )
    @patch(
        "stepwatch.cluster.config.load_incluster_config",
        side_effect=ConfigException("not in a cluster"),
    )
    def test_no_configuration(self, incluster: MagicMock, kubeconfig: MagicMock) -> None:
        with pytest.raises(ClusterApiError, match="no kubeconfig"):
            PodInspector.from_environment()
