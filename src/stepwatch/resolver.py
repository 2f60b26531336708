"""Map a step container to the check run it reports under."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from stepwatch.config import SidecarConfig
from stepwatch.defaults import CHECK_RUN_ID_ENV
from stepwatch.errors import IdResolutionError


class Resolver(Protocol):
    def resolve(self, container_name: str) -> int: ...


class EnvResolver:
    """Read the check-run id from the container's declared ``env``."""

    def __init__(self, pod: Any, key: str = CHECK_RUN_ID_ENV) -> None:
        spec = getattr(pod, "spec", None)
        self._containers = list(getattr(spec, "containers", None) or [])
        self._key = key

    def resolve(self, container_name: str) -> int:
        container = next(
            (c for c in self._containers if c.name == container_name), None
        )
        if container is None:
            msg = f"Container {container_name!r} is not declared in the pod spec"
            raise IdResolutionError(msg)

        for env in container.env or []:
            if env.name != self._key:
                continue
            if env.value is None:
                break
            try:
                return int(env.value)
            except ValueError:
                msg = (
                    f"{self._key} of container {container_name!r} is not an "
                    f"integer: {env.value!r}"
                )
                raise IdResolutionError(msg) from None

        msg = f"Container {container_name!r} declares no {self._key}"
        raise IdResolutionError(msg)


class TableResolver:
    """Look the check-run id up in a configured name -> id table."""

    def __init__(self, table: Mapping[str, int]) -> None:
        self._table = dict(table)

    def resolve(self, container_name: str) -> int:
        try:
            return self._table[container_name]
        except KeyError:
            msg = f"No check-run id configured for container {container_name!r}"
            raise IdResolutionError(msg) from None


def build_resolver(config: SidecarConfig, pod: Any) -> Resolver:
    """Prefer the configured table; fall back to the pod's env declarations."""
    if config.check_run_ids:
        return TableResolver(config.check_run_ids)
    return EnvResolver(pod)
