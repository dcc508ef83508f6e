"""docker-monitor - Full-screen Textual dashboard."""

from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from docker_monitor.client import RuntimeClient
from docker_monitor.collector import StatsCollector
from docker_monitor.config import MonitorConfig
from docker_monitor.models import ContainerStat
from docker_monitor.monitor import ContainerMonitor
from docker_monitor.render import CPU_HIGHLIGHT_THRESHOLD


def format_mb(value: float) -> str:
    """Format a MiB amount, switching to GiB above 1024."""
    if value >= 1024:
        return f"{value / 1024:.2f} GB"
    return f"{value:.2f} MB"


def format_cpu(usage: float) -> str:
    """CPU cell markup, red at or above the highlight threshold."""
    if usage >= CPU_HIGHLIGHT_THRESHOLD:
        return f"[bold red]{usage:6.2f}%[/bold red]"
    return f"{usage:6.2f}%"


class SummaryStats(Static):
    """Header widget with totals over the monitored containers."""

    DEFAULT_CSS = """
    SummaryStats {
        height: auto;
        min-height: 4;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize SummaryStats."""
        super().__init__(*args, **kwargs)
        self._container_count: int = 0
        self._failed_count: int = 0
        self._cpu_total: float = 0.0
        self._memory_used: float = 0.0
        self._memory_limit: float = 0.0
        self._network_rx: float = 0.0
        self._network_tx: float = 0.0
        self._received: bool = False

    def on_mount(self) -> None:
        self.update(self._get_summary())

    def update_stats(self, batch: list[ContainerStat]) -> None:
        """Update the totals from a stats batch."""
        available = [stat for stat in batch if stat.ok]
        self._container_count = len(available)
        self._failed_count = len(batch) - len(available)
        self._cpu_total = sum(stat.sample.cpu_percentage for stat in available)
        self._memory_used = sum(stat.sample.memory_usage_mb for stat in available)
        # Containers without a limit report the host memory; the largest one is the bound
        self._memory_limit = max((stat.sample.memory_limit_mb for stat in available), default=0.0)
        self._network_rx = sum(stat.sample.network_rx_mb for stat in available)
        self._network_tx = sum(stat.sample.network_tx_mb for stat in available)
        self._received = True
        self.update(self._get_summary())

    def _get_summary(self) -> str:
        """Get the summary display."""
        if not self._received:
            return "Waiting for container stats..."

        mem_percent = 0.0
        if self._memory_limit > 0:
            mem_percent = min(100.0, self._memory_used / self._memory_limit * 100.0)
        mem_bar_len = min(int(mem_percent / 5), 20)
        mem_bar = "[cyan]█[/cyan]" * mem_bar_len + "[dim]░[/dim]" * (20 - mem_bar_len)

        failed = ""
        if self._failed_count:
            failed = f"  [yellow]({self._failed_count} unavailable)[/yellow]"
        # Use escaped brackets for the bar container
        return (
            f"Containers: {self._container_count}{failed}\n"
            f"CPU: {format_cpu(self._cpu_total)}\n"
            f"Mem\\[{mem_bar}] {format_mb(self._memory_used)}/{format_mb(self._memory_limit)}\n"
            f"Net I/O: {format_mb(self._network_rx)} / {format_mb(self._network_tx)}"
        )


class ContainerTable(Container):
    """Container for the container stats data table."""

    DEFAULT_CSS = """
    ContainerTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ContainerTable."""
        super().__init__(*args, **kwargs)
        self._current_ids: list[str] = []

    @property
    def container_ids(self) -> list[str]:
        """Ids of the rows currently shown, in display order."""
        return list(self._current_ids)

    def compose(self) -> ComposeResult:
        """Compose the stats table."""
        yield DataTable(id="container-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#container-table", DataTable)
        table.cursor_type = "row"

        table.add_column("CONTAINER ID", key="id", width=14)
        table.add_column("NAME", key="name", width=30)
        table.add_column("STATE", key="state", width=10)
        table.add_column("CPU %", key="cpu", width=9)
        table.add_column("MEM USAGE", key="mem", width=11)
        table.add_column("MEM LIMIT", key="limit", width=11)
        table.add_column("NET RX", key="rx", width=11)
        table.add_column("NET TX", key="tx", width=11)

    def update_stats(self, batch: list[ContainerStat]) -> None:
        """
        Update the table with a new stats batch.

        Existing rows are updated in place with update_cell. Rows keep the
        order of the batch; when that order changes the table is rebuilt.
        """
        table = self.query_one("#container-table", DataTable)
        available = [stat for stat in batch if stat.ok]
        new_ids = [stat.container.id for stat in available]

        for row_id in set(self._current_ids) - set(new_ids):
            table.remove_row(row_id)
        kept = [row_id for row_id in self._current_ids if row_id in new_ids]

        if new_ids[: len(kept)] != kept:
            # A container moved or was inserted; rebuild to keep the batch order
            table.clear()
            kept = []

        for stat in available:
            if stat.container.id in kept:
                self._update_row(table, stat)
            else:
                self._add_row(table, stat)

        self._current_ids = new_ids

    @staticmethod
    def _cells(stat: ContainerStat) -> tuple[str, ...]:
        container, sample = stat.container, stat.sample
        return (
            container.short_id,
            container.display_name.lstrip("/")[:30],
            container.state,
            format_cpu(sample.cpu_percentage),
            format_mb(sample.memory_usage_mb),
            format_mb(sample.memory_limit_mb),
            format_mb(sample.network_rx_mb),
            format_mb(sample.network_tx_mb),
        )

    def _update_row(self, table: DataTable, stat: ContainerStat) -> None:
        """Update an existing row using update_cell."""
        row_key = stat.container.id
        columns = ("id", "name", "state", "cpu", "mem", "limit", "rx", "tx")
        for column, value in zip(columns, self._cells(stat)):
            table.update_cell(row_key, column, value)

    def _add_row(self, table: DataTable, stat: ContainerStat) -> None:
        """Add a new row to the table."""
        table.add_row(*self._cells(stat), key=stat.container.id)


class DockerMonitorApp(App):
    """Main docker-monitor dashboard."""

    TITLE = "docker-monitor"
    SUB_TITLE = "Container resource usage"

    CSS = """
    Screen {
        layout: vertical;
    }

    #summary-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, client: RuntimeClient, config: MonitorConfig) -> None:
        """Initialize the DockerMonitorApp."""
        super().__init__()
        self._update_queue: Queue[list[ContainerStat]] = Queue()
        collector = StatsCollector(
            client,
            max_workers=config.max_workers,
            interface=config.interface,
            fallback_cpu_count=config.fallback_cpu_count,
        )
        self._monitor = ContainerMonitor(
            client,
            collector,
            on_batch=self._update_queue.put,
            target=config.target,
            poll_interval=config.poll_interval,
            # An empty batch drops every row once the containers are gone
            on_skip=lambda: self._update_queue.put([]),
        )

    @property
    def monitor(self) -> ContainerMonitor:
        return self._monitor

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SummaryStats(id="summary-stats")
        yield ContainerTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the container monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Check the queue for stats batches and refresh the UI."""
        # Only the most recent batch matters
        batch = None
        while True:
            try:
                batch = self._update_queue.get_nowait()
            except Empty:
                break

        if batch is not None:
            self.update_ui(batch)

    def update_ui(self, batch: list[ContainerStat]) -> None:
        """Update the widgets with a stats batch."""
        self.query_one("#summary-stats", SummaryStats).update_stats(batch)
        self.query_one(ContainerTable).update_stats(batch)

    def on_unmount(self) -> None:
        self._monitor.stop()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()
