from __future__ import annotations

import logging

from stepwatch.models import Conclusion, PodFinishedRequest
from stepwatch.reporter import Notifier

logger = logging.getLogger(__name__)


class AggregateNotifier:
    """Emit the pipeline-wide success signal once every step succeeded.

    The conjunction is folded in as each step report is sent. A failed step
    needs no notification of its own here; its check run already says so.
    """

    def __init__(
        self,
        notifier: Notifier,
        step_section: int,
        repo_name: str,
        commit_sha: str,
        branch_name: str | None = None,
    ) -> None:
        self._notifier = notifier
        self._request = PodFinishedRequest(
            step_section=step_section,
            repo_name=repo_name,
            commit_sha=commit_sha,
            branch_name=branch_name,
        )
        self._all_succeeded = True
        self._evaluated = False

    @property
    def all_succeeded(self) -> bool:
        return self._all_succeeded

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    def observe(self, conclusion: Conclusion | str) -> None:
        if Conclusion(conclusion) is not Conclusion.SUCCESS:
            self._all_succeeded = False

    def notify(self) -> bool:
        """Send pod-finished if all steps succeeded. Returns whether it sent."""
        if self._evaluated:
            msg = "Pod-finished notification already evaluated"
            raise RuntimeError(msg)
        self._evaluated = True

        if not self._all_succeeded:
            logger.info("At least one step failed; skipping pod-finished notification")
            return False

        logger.info("All steps completed successfully. Notifying the controller...")
        self._notifier.notify_pod_finished(self._request)
        return True
