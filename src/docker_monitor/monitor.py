"""Container monitoring loop for docker-monitor."""

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from docker_monitor.collector import StatsCollector
from docker_monitor.config import MIN_POLL_INTERVAL
from docker_monitor.errors import ContainerNotFound, StatsFetchError
from docker_monitor.models import ContainerRef, ContainerStat

logger = logging.getLogger(__name__)

BatchHandler = Callable[[list[ContainerStat]], None]


class ContainerSource(Protocol):
    """The listing part of the runtime client the loop depends on."""

    def list_containers(self, include_stopped: bool = False) -> list[ContainerRef]: ...

    def find_container(self, specifier: str) -> ContainerRef: ...


class CycleState(Enum):
    """Phases of one poll cycle."""

    RESOLVE = "resolve"
    COLLECT = "collect"
    RENDER = "render"
    SLEEP = "sleep"


class ContainerMonitor:
    """
    Poll loop that resolves containers, collects their stats and hands each
    batch to a handler.

    Each cycle goes RESOLVE -> COLLECT -> RENDER -> SLEEP. A cycle that
    resolves no container skips COLLECT and RENDER. The sleep is a fixed
    interval after the cycle, so the period is collection time plus the
    interval.

    The loop runs in the calling thread with run(), or in a daemon thread
    with start()/stop().
    """

    def __init__(
        self,
        client: ContainerSource,
        collector: StatsCollector,
        on_batch: BatchHandler,
        target: str | None = None,
        poll_interval: float = 1.0,
        sleep: Callable[[float], object] | None = None,
        on_skip: Callable[[], None] | None = None,
    ) -> None:
        """
        Initialize the ContainerMonitor.

        Args:
            client: Runtime client used to list or find containers.
            collector: Collector that fetches the stats of a batch.
            on_batch: Receives every non-empty batch, in container order.
            target: Monitor only this container (id, id prefix or name).
            poll_interval: Seconds to wait between cycles. Default 1.0s.
            sleep: Called with poll_interval between cycles. Defaults to a
                wait on the stop event so stop() interrupts it.
            on_skip: Called instead of on_batch when a cycle finds no container
                to collect.
        """
        self._client = client
        self._collector = collector
        self._on_batch = on_batch
        self._on_skip = on_skip
        self._target = target
        self._poll_interval = max(MIN_POLL_INTERVAL, poll_interval)
        self._stop_event = threading.Event()
        self._sleep = sleep or (lambda seconds: self._stop_event.wait(timeout=seconds))
        self._thread: threading.Thread | None = None
        self._state = CycleState.RESOLVE
        self._cycles = 0

    @property
    def poll_interval(self) -> float:
        """Get the current poll interval."""
        return self._poll_interval

    @poll_interval.setter
    def poll_interval(self, value: float) -> None:
        """Set the poll interval."""
        self._poll_interval = max(MIN_POLL_INTERVAL, value)

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def cycles(self) -> int:
        """Number of cycles run so far."""
        return self._cycles

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def resolve_targets(self) -> list[ContainerRef]:
        """
        Containers to collect this cycle.

        Raises:
            ContainerNotFound: The configured target matches no container.
            StatsFetchError: The containers could not be listed.
        """
        if self._target is not None:
            return [self._client.find_container(self._target)]
        return self._client.list_containers(include_stopped=False)

    def run_cycle(self) -> list[ContainerStat] | None:
        """
        Run one resolve/collect/render pass without sleeping.

        Returns:
            The batch handed to on_batch, or None if the cycle was skipped.
        """
        self._cycles += 1
        self._state = CycleState.RESOLVE
        try:
            containers = self.resolve_targets()
        except ContainerNotFound as exc:
            logger.warning("Error finding container: %s", exc)
            return self._skip()
        except StatsFetchError as exc:
            logger.warning("Error listing containers: %s", exc)
            return self._skip()

        if not containers:
            logger.info("No containers found")
            return self._skip()

        self._state = CycleState.COLLECT
        batch = self._collector.collect(containers)

        self._state = CycleState.RENDER
        self._on_batch(batch)
        return batch

    def _skip(self) -> None:
        if self._on_skip is not None:
            self._on_skip()
        return None

    def run(self, max_cycles: int | None = None) -> None:
        """
        Run cycles until stop() is called or max_cycles is reached.

        Args:
            max_cycles: Stop after this many cycles. None runs forever.
        """
        ran = 0
        while not self._stop_event.is_set():
            self.run_cycle()
            ran += 1
            if max_cycles is not None and ran >= max_cycles:
                break
            self._state = CycleState.SLEEP
            self._sleep(self._poll_interval)

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_guarded,
            daemon=True,
            name="ContainerMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitor loop.

        Args:
            timeout: How long to wait for the thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run_guarded(self) -> None:
        """Thread body: keep cycling even if a handler raises."""
        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Monitor cycle failed")

            self._state = CycleState.SLEEP
            self._stop_event.wait(timeout=self._poll_interval)
