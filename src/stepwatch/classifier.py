from __future__ import annotations

from typing import Any

from stepwatch.errors import UnexpectedShape
from stepwatch.models import ContainerObservation, Phase


def _require(terminated: Any, attr: str, container: str) -> Any:
    value = getattr(terminated, attr, None)
    if value is None:
        msg = f"Container {container!r} terminated without {attr}"
        raise UnexpectedShape(msg)
    return value


def classify_container(status: Any) -> ContainerObservation:
    """Classify one container status (``V1ContainerStatus``) into its phase.

    A terminated state always carries ``exit_code`` and ``finished_at``;
    a missing one is a broken snapshot, not a container still running.
    """
    name = getattr(status, "name", None)
    if not name:
        msg = "Container status without a name"
        raise UnexpectedShape(msg)

    state = getattr(status, "state", None)
    if state is None:
        msg = f"Container {name!r} has no state"
        raise UnexpectedShape(msg)

    terminated = getattr(state, "terminated", None)
    if terminated is not None:
        return ContainerObservation(
            name=name,
            phase=Phase.TERMINATED,
            exit_code=int(_require(terminated, "exit_code", name)),
            started_at=getattr(terminated, "started_at", None),
            finished_at=_require(terminated, "finished_at", name),
        )

    if getattr(state, "running", None) is not None:
        return ContainerObservation(name=name, phase=Phase.RUNNING)

    return ContainerObservation(name=name, phase=Phase.WAITING)
