"""PodInspector: read-only access to the watched pod via the Kubernetes API."""

from __future__ import annotations

import logging

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from stepwatch.defaults import DEFAULT_NAMESPACE
from stepwatch.errors import ClusterApiError

logger = logging.getLogger(__name__)

_CLUSTER_ERRORS = (ApiException, HTTPError)


class PodInspector:
    """Fetch pod snapshots and container logs from one namespace."""

    def __init__(
        self, core_api: client.CoreV1Api, namespace: str = DEFAULT_NAMESPACE
    ) -> None:
        self._core_api = core_api
        self.namespace = namespace

    @classmethod
    def from_environment(cls, namespace: str = DEFAULT_NAMESPACE) -> PodInspector:
        """In-cluster service account first, local kubeconfig as fallback."""
        try:
            config.load_incluster_config()
            logger.debug("Loaded in-cluster config")
        except config.ConfigException:
            try:
                config.load_kube_config()
            except config.ConfigException as exc:
                msg = f"No Kubernetes configuration available: {exc}"
                raise ClusterApiError(msg) from exc
            logger.debug("Loaded kubeconfig")
        return cls(client.CoreV1Api(), namespace)

    def get_pod(self, name: str) -> client.V1Pod:
        try:
            return self._core_api.read_namespaced_pod(name, self.namespace)
        except _CLUSTER_ERRORS as exc:
            msg = f"Failed to read pod {self.namespace}/{name}: {exc}"
            raise ClusterApiError(msg) from exc

    def get_logs(self, pod_name: str, container_name: str) -> str:
        """Full, timestamped log output of a container.

        Follows the stream until it closes, so this blocks until the
        container's output is complete. Bytes that are not valid UTF-8
        come back as U+FFFD replacement characters.
        """
        try:
            response = self._core_api.read_namespaced_pod_log(
                name=pod_name,
                namespace=self.namespace,
                container=container_name,
                follow=True,
                timestamps=True,
                _preload_content=False,
            )
            try:
                return response.data.decode("utf-8", errors="replace")
            finally:
                response.release_conn()
        except _CLUSTER_ERRORS as exc:
            msg = (
                f"Failed to read logs of {self.namespace}/{pod_name} "
                f"container {container_name}: {exc}"
            )
            raise ClusterApiError(msg) from exc
