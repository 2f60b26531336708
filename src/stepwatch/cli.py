"""CLI entry point for the stepwatch sidecar."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from stepwatch.config import load_config
from stepwatch.errors import SidecarError

logger = logging.getLogger("stepwatch")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_QUIET_LOGGERS = ("kubernetes", "urllib3", "httpx", "httpcore")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the stepwatch CLI."""
    parser = argparse.ArgumentParser(
        prog="stepwatch",
        description="Pipeline-stage sidecar: report step containers to the CD controller",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Watch the pod until all steps finish")
    run_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="TOML file with a [sidecar] table (default: $STEPWATCH_CONFIG)",
    )
    run_parser.add_argument(
        "--pod-name",
        default=None,
        help="Pod to watch (default: $POD_NAME)",
    )
    run_parser.add_argument(
        "--namespace",
        default=None,
        help="Namespace of the pod (default: $NAMESPACE or 'default')",
    )
    run_parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between poll cycles (default: 5)",
    )
    run_parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )

    _args = parser.parse_args(argv)

    if _args.command == "run":
        return _run(_args)

    parser.print_help()
    return 0


def _configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format=_LOG_FORMAT)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _run(args: argparse.Namespace) -> int:
    from stepwatch.cluster import PodInspector
    from stepwatch.controller import ControllerClient
    from stepwatch.runner import SidecarRunner

    _configure_logging()
    console = Console()

    try:
        config = load_config(
            config_path=args.config,
            overrides={
                "pod_name": args.pod_name,
                "namespace": args.namespace,
                "poll_interval_seconds": args.poll_interval,
                "log_level": args.log_level,
            },
        )
        logging.getLogger().setLevel(config.log_level)
    except (SidecarError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    console.print(f"[bold]Watching pod {config.namespace}/{config.pod_name}[/bold]")
    try:
        inspector = PodInspector.from_environment(config.namespace)
        with ControllerClient(
            config.controller_base_url,
            config.installation_id,
            config.pod_name,
        ) as controller:
            runner = SidecarRunner(config, inspector, controller)
            summary = runner.run()
    except SidecarError as exc:
        logger.error("Error occurred while polling pod %s: %s", config.pod_name, exc)
        return 1

    console.print(runner.render_summary())
    if summary.pod_finished_sent:
        console.print("[bold]All steps succeeded. Spinning down...[/bold]")
    else:
        console.print("[bold]All containers have finished. Spinning down...[/bold]")
    return 0


def _get_version() -> str:
    from stepwatch import __version__

    return __version__


if __name__ == "__main__":
    sys.exit(main())
