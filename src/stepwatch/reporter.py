from __future__ import annotations

import logging
from typing import Protocol

from stepwatch.models import (
    Conclusion,
    ContainerObservation,
    PodFinishedRequest,
    StepReport,
    rfc3339,
)

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def update_check_run(self, report: StepReport) -> None: ...

    def notify_pod_finished(self, request: PodFinishedRequest) -> None: ...


def build_step_report(
    observation: ContainerObservation,
    check_run_id: int,
    logs: str,
    repo_name: str | None = None,
) -> StepReport:
    """Build the completed check-run update for a terminated container."""
    if not observation.terminated or observation.exit_code is None:
        msg = f"Container {observation.name!r} has not terminated"
        raise ValueError(msg)
    return StepReport(
        check_run_id=check_run_id,
        repo_name=repo_name,
        started_at=rfc3339(observation.started_at),
        finished_at=rfc3339(observation.finished_at),
        logs=logs,
        conclusion=Conclusion.from_exit_code(observation.exit_code),
    )


class StepReporter:
    def __init__(self, notifier: Notifier, repo_name: str | None = None) -> None:
        self._notifier = notifier
        self._repo_name = repo_name

    def report(
        self, observation: ContainerObservation, check_run_id: int, logs: str
    ) -> StepReport:
        """Send one step's outcome. Transport errors propagate; no retry."""
        report = build_step_report(
            observation, check_run_id, logs, repo_name=self._repo_name
        )
        logger.info(
            "Reporting %s (check run %d, exit code %d): %s",
            observation.name,
            check_run_id,
            observation.exit_code,
            report.conclusion,
        )
        self._notifier.update_check_run(report)
        return report
