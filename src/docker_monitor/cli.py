"""Command-line interface for docker-monitor."""

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from docker_monitor.client import RuntimeClient
from docker_monitor.collector import StatsCollector
from docker_monitor.config import ALL_INTERFACES, MonitorConfig
from docker_monitor.errors import AdapterConnectionError, MonitorError
from docker_monitor.logging_config import setup_logging
from docker_monitor.monitor import ContainerMonitor
from docker_monitor.render import TerminalRenderer

logger = logging.getLogger(__name__)

PROG = "docker-monitor"
LIFECYCLE_COMMANDS = ("start", "stop", "remove")
COMMANDS = (*LIFECYCLE_COMMANDS, "run", "build")

EPILOG = f"""\
examples:
  {PROG}
  {PROG} my_container
  {PROG} -v my_container
  {PROG} -s
  {PROG} -i

to start, stop or remove a container:
  {PROG} start --id CONTAINER_ID
  {PROG} stop --name CONTAINER_NAME
  {PROG} remove --id CONTAINER_ID

to run a container:
  {PROG} run IMAGE_NAME CONTAINER_NAME

to build an image from ./Dockerfile:
  {PROG} build IMAGE_TAG
"""


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


LOGGING_OPTIONS = ("--log-level", "--log-file")


def _logging_options(defaults: bool = True) -> argparse.ArgumentParser:
    # Without defaults a subcommand keeps the values given before its name
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO" if defaults else argparse.SUPPRESS,
        help="Logging level (default: INFO).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None if defaults else argparse.SUPPRESS,
        help="Also write detailed logs to this file.",
    )
    return parser


def build_monitor_parser() -> argparse.ArgumentParser:
    """Parser for the monitor and the listing flags."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Display a live stream of container(s) resource usage statistics",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[_logging_options()],
    )
    parser.add_argument(
        "container",
        nargs="?",
        default=None,
        help="Monitor only this container (id, id prefix or name).",
    )
    parser.add_argument("-v", "--vertical", action="store_true", help="Print stats vertically.")
    parser.add_argument("-s", "--stopped", action="store_true", help="List stopped containers.")
    parser.add_argument("-i", "--images", action="store_true", help="List images.")
    parser.add_argument("--tui", action="store_true", help="Open the full-screen dashboard.")
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds to wait between refreshes (default: 1.0).",
    )
    parser.add_argument(
        "--max-workers",
        type=_positive_int,
        default=None,
        help="Cap on simultaneous stats requests (default: one per container).",
    )
    parser.add_argument(
        "--interface",
        default="eth0",
        help=f"Network interface to report, '{ALL_INTERFACES}' to sum them (default: eth0).",
    )
    parser.add_argument(
        "--host-cores",
        action="store_true",
        help="Use this host's core count when the daemon reports no per-core CPU usage.",
    )
    return parser


def build_command_parser() -> argparse.ArgumentParser:
    """Parser for the one-shot container and image commands."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Manage containers and images",
        parents=[_logging_options()],
    )
    common = _logging_options(defaults=False)
    subparsers = parser.add_subparsers(dest="command", required=True)

    for command in LIFECYCLE_COMMANDS:
        sub = subparsers.add_parser(
            command, help=f"{command.capitalize()} a container.", parents=[common]
        )
        target = sub.add_mutually_exclusive_group(required=True)
        target.add_argument("--id", dest="container_id", help="Container id.")
        target.add_argument("--name", dest="container_name", help="Container name.")

    run = subparsers.add_parser(
        "run", help="Create and start a container from an image.", parents=[common]
    )
    run.add_argument("image", help="Image to run.")
    run.add_argument("name", help="Name of the new container.")

    build = subparsers.add_parser(
        "build", help="Build an image from a Dockerfile.", parents=[common]
    )
    build.add_argument("tag", help="Tag of the new image.")
    build.add_argument("-f", "--file", default="./Dockerfile", help="Dockerfile path.")
    build.add_argument("--context", default=".", help="Build context directory.")

    return parser


def command_name(argv: Sequence[str]) -> str | None:
    """First positional argument, skipping the logging options and their values."""
    tokens = iter(argv)
    for token in tokens:
        if token in LOGGING_OPTIONS:
            next(tokens, None)
        elif not token.startswith("-"):
            return token
    return None


def run_command(
    client: RuntimeClient, args: argparse.Namespace, renderer: TerminalRenderer
) -> None:
    """
    Execute one container or image command.

    Raises:
        MonitorError: If the command fails.
    """
    if args.command in LIFECYCLE_COMMANDS:
        container_id = args.container_id
        if container_id is None:
            container_id = client.find_container(args.container_name).id
        getattr(client, args.command)(container_id)
        logger.info("%s: %s", args.command.capitalize(), container_id)
    elif args.command == "run":
        container = client.run(args.image, args.name)
        logger.info("Started %s (%s)", container.display_name, container.short_id)
    elif args.command == "build":
        renderer.print_lines(client.build(args.tag, dockerfile=args.file, context_dir=args.context))


def run_monitor(client: RuntimeClient, config: MonitorConfig) -> None:
    """Run the live monitor in the terminal until interrupted."""
    if config.tui:
        from docker_monitor.app import DockerMonitorApp

        DockerMonitorApp(client, config).run()
        return

    renderer = TerminalRenderer(vertical=config.vertical)
    collector = StatsCollector(
        client,
        max_workers=config.max_workers,
        interface=config.interface,
        fallback_cpu_count=config.fallback_cpu_count,
    )
    monitor = ContainerMonitor(
        client,
        collector,
        on_batch=renderer.render,
        target=config.target,
        poll_interval=config.poll_interval,
    )
    monitor.run()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for docker-monitor."""
    argv = list(sys.argv[1:] if argv is None else argv)
    is_command = command_name(argv) in COMMANDS
    parser = build_command_parser() if is_command else build_monitor_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=getattr(logging, args.log_level),
        log_file=args.log_file,
        console=not getattr(args, "tui", False),
    )

    try:
        client = RuntimeClient.connect()
    except AdapterConnectionError as exc:
        logger.error("%s", exc)
        return 1

    renderer = TerminalRenderer()
    try:
        if is_command:
            run_command(client, args, renderer)
        elif args.images or args.stopped:
            if args.stopped:
                renderer.print_stopped(client.list_containers(include_stopped=True))
            if args.images:
                renderer.print_images(client.list_images())
        else:
            run_monitor(client, MonitorConfig.from_args(args))
    except MonitorError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        return 130
    finally:
        client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
