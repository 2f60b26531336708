from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from kubernetes.client import (
    V1Container,
    V1ContainerState,
    V1ContainerStateRunning,
    V1ContainerStateTerminated,
    V1ContainerStateWaiting,
    V1ContainerStatus,
    V1EnvVar,
    V1ObjectMeta,
    V1Pod,
    V1PodSpec,
    V1PodStatus,
)

from stepwatch.config import SidecarConfig
from stepwatch.defaults import SIDECAR_CONTAINER_NAME

POD_NAME = "pipeline-pod"
STARTED_AT = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
FINISHED_AT = STARTED_AT + timedelta(minutes=3)


@pytest.fixture()
def config() -> SidecarConfig:
    return SidecarConfig(
        pod_name=POD_NAME,
        installation_id=7,
        controller_base_url="http://controller.local",
        repo_name="acme/widgets",
        step_section=3,
        commit_sha="abc123",
        branch_name="main",
        poll_interval_seconds=0.0,
    )


def container_status(name: str, state: V1ContainerState) -> V1ContainerStatus:
    return V1ContainerStatus(
        name=name,
        image=f"registry.local/{name}:latest",
        image_id="",
        ready=state.running is not None,
        restart_count=0,
        state=state,
    )


def waiting(name: str) -> V1ContainerStatus:
    return container_status(
        name,
        V1ContainerState(waiting=V1ContainerStateWaiting(reason="ContainerCreating")),
    )


def running(name: str) -> V1ContainerStatus:
    return container_status(
        name, V1ContainerState(running=V1ContainerStateRunning(started_at=STARTED_AT))
    )


def terminated(
    name: str,
    exit_code: int = 0,
    started_at: datetime | None = STARTED_AT,
    finished_at: datetime = FINISHED_AT,
) -> V1ContainerStatus:
    return container_status(
        name,
        V1ContainerState(
            terminated=V1ContainerStateTerminated(
                exit_code=exit_code,
                started_at=started_at,
                finished_at=finished_at,
                reason="Completed" if exit_code == 0 else "Error",
            )
        ),
    )


def make_pod(
    statuses: list[V1ContainerStatus],
    check_run_ids: dict[str, int | None] | None = None,
) -> V1Pod:
    """Pod whose step containers declare ``CHECK_RUN_ID`` in their env.

    Without *check_run_ids* every non-sidecar container gets id 100, 101, ...
    in status order. A ``None`` id declares no env at all.
    """
    if check_run_ids is None:
        steps = [s.name for s in statuses if s.name != SIDECAR_CONTAINER_NAME]
        check_run_ids = {name: 100 + i for i, name in enumerate(steps)}

    containers = []
    for status in statuses:
        check_run_id = check_run_ids.get(status.name)
        env = (
            [V1EnvVar(name="CHECK_RUN_ID", value=str(check_run_id))]
            if check_run_id is not None
            else None
        )
        containers.append(V1Container(name=status.name, env=env))

    return V1Pod(
        metadata=V1ObjectMeta(name=POD_NAME),
        spec=V1PodSpec(containers=containers),
        status=V1PodStatus(phase="Running", container_statuses=statuses),
    )


class ScriptedInspector:
    """Serves one pod snapshot per ``get_pod`` call; the last one repeats."""

    def __init__(self, pods: list[V1Pod], logs: dict[str, str] | None = None) -> None:
        self._pods = list(pods)
        self._logs = logs or {}
        self.pod_calls = 0
        self.log_calls: list[tuple[str, str]] = []

    def get_pod(self, name: str) -> V1Pod:
        index = min(self.pod_calls, len(self._pods) - 1)
        self.pod_calls += 1
        return self._pods[index]

    def get_logs(self, pod_name: str, container_name: str) -> str:
        self.log_calls.append((pod_name, container_name))
        return self._logs.get(
            container_name, f"2024-05-01T12:00:01Z {container_name} done\n"
        )
