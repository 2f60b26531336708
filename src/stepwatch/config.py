from __future__ import annotations

import math
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from stepwatch.defaults import (
    CONFIG_ENV,
    CONFIG_SECTION,
    DEFAULT_NAMESPACE,
    ENV_VARS,
    POLL_INTERVAL_SECONDS,
    REQUIRED_SETTINGS,
    SIDECAR_DEFAULTS,
)
from stepwatch.errors import ConfigMissing


@dataclass(frozen=True)
class SidecarConfig:
    pod_name: str
    installation_id: int
    controller_base_url: str
    repo_name: str
    step_section: int
    commit_sha: str
    namespace: str = DEFAULT_NAMESPACE
    branch_name: str | None = None
    check_run_ids: dict[str, int] = field(default_factory=dict)
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    log_level: str = "INFO"


def parse_check_run_table(raw: str) -> dict[str, int]:
    """Parse ``name=id,name=id`` into a container name -> check-run id map.

    Blank entries (e.g. a trailing comma) are ignored.
    """
    table: dict[str, int] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, value = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            msg = f"Malformed check-run table entry: {entry!r}"
            raise ConfigMissing(msg)
        if name in table:
            msg = f"Duplicate check-run table entry for container {name!r}"
            raise ConfigMissing(msg)
        table[name] = _parse_int("check_run_ids", value.strip())
    return table


def _parse_int(setting: str, value: object) -> int:
    if isinstance(value, bool):
        msg = f"{setting} must be an integer, got {value!r}"
        raise ConfigMissing(msg)
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        msg = f"{setting} must be an integer, got {value!r}"
        raise ConfigMissing(msg) from None


def _parse_float(setting: str, value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        msg = f"{setting} must be a number, got {value!r}"
        raise ConfigMissing(msg) from None


def _parse_interval(setting: str, value: object) -> float:
    seconds = _parse_float(setting, value)
    if not math.isfinite(seconds) or seconds < 0:
        msg = f"{setting} must be a finite, non-negative number, got {value!r}"
        raise ConfigMissing(msg)
    return seconds


def _read_toml(path: Path) -> dict:
    try:
        data = tomllib.loads(path.read_bytes().decode())
    except FileNotFoundError:
        msg = f"Config file not found: {path}"
        raise ConfigMissing(msg) from None
    except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        msg = f"Failed to parse {path}: {exc}"
        raise ConfigMissing(msg) from exc
    section = data.get(CONFIG_SECTION, {})
    if not isinstance(section, dict):
        msg = f"[{CONFIG_SECTION}] in {path} must be a table"
        raise ConfigMissing(msg)
    return section


def _from_environment(environ: Mapping[str, str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for setting, var in ENV_VARS.items():
        value = environ.get(var)
        if value is not None and value.strip():
            values[setting] = value.strip()
    return values


def _coerce_table(value: object) -> dict[str, int]:
    if isinstance(value, str):
        return parse_check_run_table(value)
    if isinstance(value, dict):
        return {str(k): _parse_int("check_run_ids", v) for k, v in value.items()}
    msg = f"check_run_ids must be a string or a table, got {value!r}"
    raise ConfigMissing(msg)


def load_config(
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
    overrides: Mapping[str, object] | None = None,
) -> SidecarConfig:
    """Load config: source defaults <- TOML file <- environment <- overrides.

    The TOML file is read from *config_path*, or from the path named by
    ``STEPWATCH_CONFIG`` when no path is given. Raises :class:`ConfigMissing`
    when a required setting is absent or a value cannot be parsed.
    """
    if environ is None:
        environ = os.environ
    if config_path is None and environ.get(CONFIG_ENV):
        config_path = Path(environ[CONFIG_ENV])

    merged: dict[str, object] = dict(SIDECAR_DEFAULTS)
    if config_path is not None:
        merged.update(_read_toml(config_path))
    merged.update(_from_environment(environ))
    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})

    missing = [name for name in REQUIRED_SETTINGS if merged.get(name) in (None, "")]
    if missing:
        names = ", ".join(ENV_VARS[name] for name in missing)
        msg = f"Missing required configuration: {names}"
        raise ConfigMissing(msg)

    branch_name = merged.get("branch_name")
    return SidecarConfig(
        pod_name=str(merged["pod_name"]),
        installation_id=_parse_int("installation_id", merged["installation_id"]),
        controller_base_url=str(merged["controller_base_url"]).rstrip("/"),
        repo_name=str(merged["repo_name"]),
        step_section=_parse_int("step_section", merged["step_section"]),
        commit_sha=str(merged["commit_sha"]),
        namespace=str(merged["namespace"]),
        branch_name=str(branch_name) if branch_name else None,
        check_run_ids=_coerce_table(merged.get("check_run_ids", "")),
        poll_interval_seconds=_parse_interval(
            "poll_interval_seconds", merged["poll_interval_seconds"]
        ),
        log_level=str(merged["log_level"]).upper(),
    )
