from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from rich.table import Table

from stepwatch.aggregate import AggregateNotifier
from stepwatch.classifier import classify_container
from stepwatch.config import SidecarConfig
from stepwatch.errors import UnexpectedShape
from stepwatch.models import Conclusion, ContainerObservation, StepReport
from stepwatch.reporter import Notifier, StepReporter
from stepwatch.resolver import Resolver, build_resolver
from stepwatch.tracker import CompletionTracker, ContainerState

logger = logging.getLogger(__name__)


class Inspector(Protocol):
    def get_pod(self, name: str) -> Any: ...

    def get_logs(self, pod_name: str, container_name: str) -> str: ...


@dataclass
class RunSummary:
    ticks: int
    reports: dict[str, StepReport] = field(default_factory=dict)
    pod_finished_sent: bool = False
    all_succeeded: bool = True


def _container_statuses(pod: Any) -> list[Any]:
    if getattr(pod, "spec", None) is None:
        msg = "Pod snapshot has no spec"
        raise UnexpectedShape(msg)
    status = getattr(pod, "status", None)
    if status is None:
        msg = "Pod snapshot has no status"
        raise UnexpectedShape(msg)
    statuses = getattr(status, "container_statuses", None)
    if statuses is None:
        msg = "Pod status has no container statuses"
        raise UnexpectedShape(msg)
    return list(statuses)


class SidecarRunner:
    """Poll the pod until every step container has been reported.

    One tick fetches the pod, classifies each container that still matters,
    and reports newly terminated ones one after another. Log retrieval blocks,
    so a slow log stream delays every later container in the same tick.
    """

    def __init__(
        self,
        config: SidecarConfig,
        inspector: Inspector,
        notifier: Notifier,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.inspector = inspector
        self.tracker = CompletionTracker()
        self.reporter = StepReporter(notifier, repo_name=config.repo_name)
        self.aggregate = AggregateNotifier(
            notifier,
            step_section=config.step_section,
            repo_name=config.repo_name,
            commit_sha=config.commit_sha,
            branch_name=config.branch_name,
        )
        self._sleep = sleep
        self._reports: dict[str, StepReport] = {}
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def reports(self) -> dict[str, StepReport]:
        return dict(self._reports)

    def run(self) -> RunSummary:
        logger.info("Waiting for pod %s to finish...", self.config.pod_name)
        while not self.tick():
            self._sleep(self.config.poll_interval_seconds)

        logger.info("All containers have finished!")
        sent = self.aggregate.notify()
        return RunSummary(
            ticks=self._ticks,
            reports=self.reports,
            pod_finished_sent=sent,
            all_succeeded=self.aggregate.all_succeeded,
        )

    def tick(self) -> bool:
        """Run one poll cycle. Returns True once the pod is finished."""
        self._ticks += 1
        pod = self.inspector.get_pod(self.config.pod_name)
        statuses = _container_statuses(pod)

        observations: list[ContainerObservation] = []
        for status in statuses:
            name = getattr(status, "name", None)
            if name and self.tracker.should_skip(name):
                continue
            observation = classify_container(status)
            self._log_observation(observation)
            observations.append(observation)

        resolver: Resolver | None = None
        for observation in self.tracker.pending(observations):
            if resolver is None:
                resolver = build_resolver(self.config, pod)
            self._report(observation, resolver)

        reportable = self.tracker.reportable_count(statuses)
        logger.debug(
            "Tick %d: %d/%d containers reported",
            self._ticks,
            self.tracker.reported_count,
            reportable,
        )
        return self.tracker.is_finished(reportable)

    def _report(self, observation: ContainerObservation, resolver: Resolver) -> None:
        # Resolve before fetching logs: an unattributable container must not
        # produce any check-run update.
        check_run_id = resolver.resolve(observation.name)
        logs = self.inspector.get_logs(self.config.pod_name, observation.name)
        report = self.reporter.report(observation, check_run_id, logs)
        self.tracker.record(observation.name)
        self.aggregate.observe(report.conclusion)
        self._reports[observation.name] = report

    def _log_observation(self, observation: ContainerObservation) -> None:
        state = self.tracker.state_of(observation.name, observation)
        if state is ContainerState.TERMINATED_UNREPORTED:
            logger.info(
                "Container %s has finished (exit code %d)",
                observation.name,
                observation.exit_code,
            )
        elif state is ContainerState.RUNNING:
            logger.debug("Container %s is still running...", observation.name)
        elif state is ContainerState.WAITING:
            logger.debug("Container %s is still waiting...", observation.name)

    def render_summary(self) -> Table:
        table = Table(title=f"Steps of {self.config.pod_name}")
        table.add_column("Container", style="cyan")
        table.add_column("Check run", justify="right")
        table.add_column("Conclusion")
        table.add_column("Finished at", style="dim")

        for name, report in self._reports.items():
            style = "bold green" if report.conclusion == Conclusion.SUCCESS else "bold red"
            table.add_row(
                name,
                str(report.check_run_id),
                f"[{style}]{report.conclusion}[/]",
                report.finished_at,
            )

        if not self.aggregate.evaluated:
            pod_finished = "pending"
        elif self.aggregate.all_succeeded:
            pod_finished = "sent"
        else:
            pod_finished = "skipped"
        table.caption = (
            f"Reported: {self.tracker.reported_count} | "
            f"All succeeded: {'yes' if self.aggregate.all_succeeded else 'no'} | "
            f"Pod-finished: {pod_finished}"
        )
        return table
