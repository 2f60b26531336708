"""ControllerClient: httpx-based client for the CD controller."""

from __future__ import annotations

import logging

import httpx

from stepwatch.errors import NotificationTransportError
from stepwatch.models import ControllerRequest, PodFinishedRequest, StepReport

logger = logging.getLogger(__name__)


class ControllerClient:
    """Notify the controller about finished steps and finished pods.

    Use as a context manager to reuse a single connection pool::

        with ControllerClient(base_url, installation_id, pod_name) as controller:
            controller.update_check_run(report)

    Every request identifies the invoking pod through its ``User-Agent``.
    Non-2xx answers are failures; nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        installation_id: int,
        pod_name: str,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._installation_id = installation_id
        self._headers = {
            "User-Agent": pod_name,
            "Content-Type": "application/json",
        }
        self._client = http_client
        self._owns_client = http_client is None

    def __enter__(self) -> ControllerClient:
        if self._client is None:
            self._client = httpx.Client()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def _post(self, endpoint: str, body: ControllerRequest) -> httpx.Response:
        url = f"{self._base_url}/{endpoint}/{self._installation_id}"
        content = body.to_json()
        try:
            if self._client is not None:
                resp = self._client.post(url, headers=self._headers, content=content)
            else:
                with httpx.Client() as c:
                    resp = c.post(url, headers=self._headers, content=content)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            msg = f"POST {url} failed: {exc}"
            raise NotificationTransportError(msg) from exc
        return resp

    # -- Public API -------------------------------------------------------

    def update_check_run(self, report: StepReport) -> None:
        logger.info("Updating check run %d...", report.check_run_id)
        self._post("update-check-run", report)

    def notify_pod_finished(self, request: PodFinishedRequest) -> None:
        logger.info("Notifying all steps completed successfully...")
        self._post("pod-finished", request)
