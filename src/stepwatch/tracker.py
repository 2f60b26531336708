from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from stepwatch.defaults import SIDECAR_CONTAINER_NAME
from stepwatch.models import ContainerObservation, Phase


class ContainerState(Enum):
    UNSEEN = "unseen"
    WAITING = "waiting"
    RUNNING = "running"
    TERMINATED_UNREPORTED = "terminated-unreported"
    TERMINATED_REPORTED = "terminated-reported"


class CompletionTracker:
    """Exactly-once bookkeeping of reported step containers.

    The set of reported names only grows. Finishing is decided by comparing
    its size to the reportable container count with exact equality, so a
    terminated container polled again is never counted twice and the loop
    stops on the tick of the last report.
    """

    def __init__(self, sidecar_name: str = SIDECAR_CONTAINER_NAME) -> None:
        self._sidecar_name = sidecar_name
        self._reported: set[str] = set()

    @property
    def reported(self) -> frozenset[str]:
        return frozenset(self._reported)

    @property
    def reported_count(self) -> int:
        return len(self._reported)

    def is_sidecar(self, name: str) -> bool:
        return name == self._sidecar_name

    def is_reported(self, name: str) -> bool:
        return name in self._reported

    def should_skip(self, name: str) -> bool:
        """Sidecar and already-reported containers need no classification."""
        return self.is_sidecar(name) or self.is_reported(name)

    def pending(
        self, observations: Iterable[ContainerObservation]
    ) -> list[ContainerObservation]:
        """Terminated containers not reported yet, in snapshot order."""
        return [
            obs
            for obs in observations
            if obs.phase is Phase.TERMINATED and not self.should_skip(obs.name)
        ]

    def record(self, name: str) -> None:
        if self.is_sidecar(name):
            msg = f"Sidecar container {name!r} is never reported"
            raise ValueError(msg)
        if name in self._reported:
            msg = f"Container {name!r} was already reported"
            raise ValueError(msg)
        self._reported.add(name)

    def reportable_count(self, statuses: Iterable[Any]) -> int:
        return sum(1 for status in statuses if not self.is_sidecar(status.name))

    def is_finished(self, reportable_count: int) -> bool:
        return self.reported_count == reportable_count

    def state_of(
        self, name: str, observation: ContainerObservation | None = None
    ) -> ContainerState:
        if name in self._reported:
            return ContainerState.TERMINATED_REPORTED
        if observation is None:
            return ContainerState.UNSEEN
        if observation.phase is Phase.TERMINATED:
            return ContainerState.TERMINATED_UNREPORTED
        if observation.phase is Phase.RUNNING:
            return ContainerState.RUNNING
        return ContainerState.WAITING
