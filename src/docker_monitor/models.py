"""Data models for docker-monitor."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True, frozen=True)
class ContainerRef:
    """Read-only snapshot of a container as listed by the Docker daemon."""

    id: str
    names: tuple[str, ...] = ()  # Docker style, with a leading '/'
    state: str = ""  # 'running', 'exited', 'paused', etc.
    image: str = ""
    status: str = ""

    @classmethod
    def from_api(cls, entry: dict[str, Any]) -> "ContainerRef":
        """Build a reference from a container list entry of the Engine API."""
        return cls(
            id=entry.get("Id", ""),
            names=tuple(entry.get("Names") or ()),
            state=entry.get("State") or "",
            image=entry.get("Image") or "",
            status=entry.get("Status") or "",
        )

    @property
    def short_id(self) -> str:
        return self.id[:12]

    @property
    def display_name(self) -> str:
        """First name of the container, or its short id when it has none."""
        return self.names[0] if self.names else self.short_id


@dataclass(slots=True, frozen=True)
class ImageRef:
    """A single repository tag of a local image."""

    repository: str
    tag: str
    image_id: str


@dataclass(slots=True, frozen=True)
class RawStats:
    """Cumulative counters from one stats snapshot of the Engine API."""

    cpu_total: int = 0
    precpu_total: int = 0
    system_cpu: int = 0
    presystem_cpu: int = 0
    percpu_count: int = 0  # 0 when the platform reports no per-core breakdown
    memory_usage: int = 0  # Bytes
    memory_limit: int = 0  # Bytes
    networks: dict[str, tuple[int, int]] = field(default_factory=dict)  # rx, tx bytes


@dataclass(slots=True, frozen=True)
class ContainerSample:
    """Normalized resource usage of one container.

    All fields default to zero, which is the placeholder used for a container
    whose stats could not be fetched in a cycle.
    """

    cpu_percentage: float = 0.0  # 0.0 - 100.0 * core_count
    memory_usage_mb: float = 0.0
    memory_limit_mb: float = 0.0
    network_rx_mb: float = 0.0
    network_tx_mb: float = 0.0


@dataclass(slots=True, frozen=True)
class ContainerStat:
    """One slot of a stats batch: a container and its sample for the cycle."""

    container: ContainerRef
    sample: ContainerSample = field(default_factory=ContainerSample)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
