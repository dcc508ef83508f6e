"""Parallel collection of container stats."""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from docker_monitor.errors import MonitorError
from docker_monitor.models import ContainerRef, ContainerStat, RawStats
from docker_monitor.stats import FALLBACK_CPU_COUNT, decode

logger = logging.getLogger(__name__)


class StatsSource(Protocol):
    """The part of the runtime client the collector depends on."""

    def fetch_raw_stats(self, container_id: str) -> RawStats: ...


class StatsCollector:
    """
    Fetch a stats sample for every container of a batch concurrently.

    Results come back in input order whatever order the fetches complete in.
    The result list is sized before any worker starts and each worker writes
    only its own slot, so no lock is needed. A failed fetch leaves its slot
    holding the zero-value sample and never aborts the batch.
    """

    def __init__(
        self,
        client: StatsSource,
        max_workers: int | None = None,
        interface: str | None = "eth0",
        fallback_cpu_count: int = FALLBACK_CPU_COUNT,
    ) -> None:
        """
        Initialize the StatsCollector.

        Args:
            client: Source of raw stats snapshots, shared by all workers.
            max_workers: Cap on simultaneous fetches. None starts one worker
                per container.
            interface: Network interface to report, None to sum all of them.
            fallback_cpu_count: Core count used when no per-core usage is reported.
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._client = client
        self._max_workers = max_workers
        self._interface = interface
        self._fallback_cpu_count = fallback_cpu_count

    @property
    def max_workers(self) -> int | None:
        return self._max_workers

    def collect(self, containers: Sequence[ContainerRef]) -> list[ContainerStat]:
        """
        Collect one sample per container.

        Blocks until every fetch has completed or failed. Never raises for a
        per-container failure.
        """
        if not containers:
            return []

        results = [ContainerStat(container=container) for container in containers]
        workers = len(containers)
        if self._max_workers is not None:
            workers = min(workers, self._max_workers)

        # Leaving the with block waits for every submitted fetch
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="stats") as pool:
            for index, container in enumerate(containers):
                pool.submit(self._fetch_into, results, index, container)

        return results

    def _fetch_into(
        self, results: list[ContainerStat], index: int, container: ContainerRef
    ) -> None:
        try:
            raw = self._client.fetch_raw_stats(container.id)
            sample = decode(raw, self._interface, self._fallback_cpu_count)
        except MonitorError as exc:
            logger.warning("Error fetching stats for container %s: %s", container.short_id, exc)
            results[index] = ContainerStat(container=container, error=str(exc))
            return
        except Exception as exc:
            logger.exception("Unexpected error fetching stats for container %s", container.short_id)
            error = str(exc) or type(exc).__name__
            results[index] = ContainerStat(container=container, error=error)
            return

        results[index] = ContainerStat(container=container, sample=sample)
