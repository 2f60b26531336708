"""Data exchanged between the poll loop and the controller.

``ContainerObservation`` is rebuilt from the pod snapshot on every tick. The
pydantic models are the JSON bodies posted to the controller and are frozen:
a report is built once per container, immediately before it is sent.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class Phase(Enum):
    WAITING = "waiting"
    RUNNING = "running"
    TERMINATED = "terminated"


class Conclusion(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"

    @classmethod
    def from_exit_code(cls, exit_code: int) -> Conclusion:
        """Success iff *exit_code* is exactly 0; signal-derived codes fail."""
        return cls.SUCCESS if exit_code == 0 else cls.FAILURE


@dataclass(frozen=True)
class ContainerObservation:
    name: str
    phase: Phase
    exit_code: int | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def terminated(self) -> bool:
        return self.phase is Phase.TERMINATED


def rfc3339(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


class ControllerRequest(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


class StepReport(ControllerRequest):
    check_run_id: int
    repo_name: str | None = None
    status: Literal["completed"] = "completed"
    started_at: str | None = None
    finished_at: str
    logs: str
    conclusion: Conclusion


class PodFinishedRequest(ControllerRequest):
    step_section: int
    repo_name: str
    commit_sha: str
    branch_name: str | None = None
