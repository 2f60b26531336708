"""Compiled-in default configuration values for stepwatch.

This module is the single source of truth for all default settings.
Other modules should import from here rather than duplicating values.
"""

from __future__ import annotations

from typing import Final

SIDECAR_CONTAINER_NAME: Final[str] = "kubes-cd-sidecar"
CHECK_RUN_ID_ENV: Final[str] = "CHECK_RUN_ID"

POLL_INTERVAL_SECONDS: Final[float] = 5.0
DEFAULT_NAMESPACE: Final[str] = "default"

CONFIG_ENV: Final[str] = "STEPWATCH_CONFIG"
CONFIG_SECTION: Final[str] = "sidecar"

# setting name -> environment variable
ENV_VARS: Final[dict[str, str]] = {
    "pod_name": "POD_NAME",
    "installation_id": "INSTALLATION_ID",
    "controller_base_url": "KUBES_CD_CONTROLLER_BASE_URL",
    "namespace": "NAMESPACE",
    "repo_name": "REPO_NAME",
    "step_section": "STEP_SECTION",
    "commit_sha": "COMMIT_SHA",
    "branch_name": "BRANCH_NAME",
    "check_run_ids": "CHECK_RUN_IDS",
    "poll_interval_seconds": "POLL_INTERVAL_SECONDS",
    "log_level": "LOG_LEVEL",
}

REQUIRED_SETTINGS: Final[tuple[str, ...]] = (
    "pod_name",
    "installation_id",
    "controller_base_url",
    "repo_name",
    "step_section",
    "commit_sha",
)

SIDECAR_DEFAULTS: Final[dict[str, str | float]] = {
    "namespace": DEFAULT_NAMESPACE,
    "poll_interval_seconds": POLL_INTERVAL_SECONDS,
    "log_level": "INFO",
}
