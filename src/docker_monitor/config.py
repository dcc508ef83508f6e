"""Runtime configuration for docker-monitor."""

import argparse
from dataclasses import dataclass

import psutil

from docker_monitor.stats import FALLBACK_CPU_COUNT

MIN_POLL_INTERVAL = 0.1
ALL_INTERFACES = "all"


@dataclass(slots=True)
class MonitorConfig:
    """Settings of the monitor loop."""

    poll_interval: float = 1.0  # Seconds slept between cycles
    vertical: bool = False
    target: str | None = None  # Single container id, id prefix or name
    max_workers: int | None = None  # None = one fetch worker per container
    interface: str | None = "eth0"  # None = sum all interfaces
    fallback_cpu_count: int = FALLBACK_CPU_COUNT
    tui: bool = False

    def __post_init__(self) -> None:
        self.poll_interval = max(MIN_POLL_INTERVAL, self.poll_interval)
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "MonitorConfig":
        """Build the configuration from parsed monitor command-line arguments."""
        interface = args.interface
        if interface == ALL_INTERFACES:
            interface = None

        fallback_cpu_count = FALLBACK_CPU_COUNT
        if args.host_cores:
            fallback_cpu_count = host_cpu_count()

        return cls(
            poll_interval=args.interval,
            vertical=args.vertical,
            target=args.container,
            max_workers=args.max_workers,
            interface=interface,
            fallback_cpu_count=fallback_cpu_count,
            tui=args.tui,
        )


def host_cpu_count() -> int:
    """Logical core count of this host, FALLBACK_CPU_COUNT if unknown."""
    return psutil.cpu_count(logical=True) or FALLBACK_CPU_COUNT
