"""Error taxonomy for the sidecar.

Every failure is terminal for the process: errors are raised where they are
detected, propagate through the poll loop untouched and are turned into a
logged message and exit code 1 by :func:`stepwatch.cli.main` only.
"""

from __future__ import annotations


class SidecarError(Exception):
    """Base class for every fatal sidecar error."""


class ConfigMissing(SidecarError):
    """Required configuration is absent or cannot be parsed."""


class ClusterApiError(SidecarError):
    """Fetching the pod or a container's logs from the cluster failed."""


class UnexpectedShape(SidecarError):
    """A pod snapshot is missing a field the cluster API always provides."""


class IdResolutionError(SidecarError):
    """No check-run id could be resolved for a container."""


class NotificationTransportError(SidecarError):
    """The controller could not be reached or answered with an error."""
