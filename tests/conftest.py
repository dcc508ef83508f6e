"""Shared fixtures: an in-memory stand-in for the Docker runtime client."""

import threading
import time

import pytest

from docker_monitor.client import match_container
from docker_monitor.errors import ContainerNotFound, StatsFetchError
from docker_monitor.models import ContainerRef, RawStats


class FakeRuntimeClient:
    """
    Runtime client serving canned containers and stats.

    Records how many fetches run at the same time so tests can check the
    collector's fan-out.
    """

    def __init__(self, containers=(), stats=None, failures=(), delays=None):
        self.containers: list[ContainerRef] = list(containers)
        self.stats: dict[str, RawStats] = dict(stats or {})
        self.failures: set[str] = set(failures)
        self.delays: dict[str, float] = dict(delays or {})
        self.fetched: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def list_containers(self, include_stopped: bool = False) -> list[ContainerRef]:
        if include_stopped:
            return list(self.containers)
        return [c for c in self.containers if c.state == "running"]

    def find_container(self, specifier: str) -> ContainerRef:
        return match_container(self.containers, specifier)

    def fetch_raw_stats(self, container_id: str) -> RawStats:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            time.sleep(self.delays.get(container_id, 0.0))
            with self._lock:
                self.fetched.append(container_id)
            if container_id in self.failures:
                raise StatsFetchError(f"error fetching stats for {container_id}")
            if container_id not in self.stats:
                raise ContainerNotFound(f"container not found: {container_id}")
            return self.stats[container_id]
        finally:
            with self._lock:
                self.in_flight -= 1


def make_container(index: int, state: str = "running") -> ContainerRef:
    """Container with a 64-char id built from its index and name /app-<index>."""
    container_id = f"{index:04d}" + "ab" * 30
    return ContainerRef(
        id=container_id,
        names=(f"/app-{index}",),
        state=state,
        image="nginx:latest",
        status="Up 5 minutes",
    )


def make_raw(
    cpu: int = 20,
    precpu: int = 10,
    system: int = 200,
    presystem: int = 100,
    percpu: int = 4,
    memory: int = 1024 * 1024,
    limit: int = 4 * 1024 * 1024,
) -> RawStats:
    return RawStats(
        cpu_total=cpu,
        precpu_total=precpu,
        system_cpu=system,
        presystem_cpu=presystem,
        percpu_count=percpu,
        memory_usage=memory,
        memory_limit=limit,
        networks={"eth0": (2 * 1024 * 1024, 1024 * 1024)},
    )


@pytest.fixture
def containers() -> list[ContainerRef]:
    """Three running containers."""
    return [make_container(i) for i in range(3)]


@pytest.fixture
def fake_client(containers) -> FakeRuntimeClient:
    """Fake client whose three containers all report stats."""
    stats = {
        c.id: make_raw(cpu=10 * (i + 2), precpu=10, system=200, presystem=100)
        for i, c in enumerate(containers)
    }
    return FakeRuntimeClient(containers=containers, stats=stats)
