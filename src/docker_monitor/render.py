"""Terminal output of container stats."""

from collections.abc import Iterable

from rich.console import Console
from rich.text import Text

from docker_monitor.models import ContainerRef, ContainerSample, ContainerStat, ImageRef

# Move to row 2 and clear to the end of the screen, keeping the first row
CLEAR_BELOW_HEADER = "\033[2;1H\033[J"
# Clear the entire screen and move to the top-left corner
CLEAR_SCREEN = "\033[2J\033[H"

# CPU usage at or above this is highlighted
CPU_HIGHLIGHT_THRESHOLD = 100.0

NAME_WIDTH = 60
SEPARATOR = "-" * 100


def cpu_text(usage: float) -> Text:
    """CPU percentage text, bold red once it reaches the highlight threshold."""
    style = "bold red" if usage >= CPU_HIGHLIGHT_THRESHOLD else ""
    return Text(f"{usage:.2f}", style=style)


def horizontal_row(container: ContainerRef, sample: ContainerSample) -> Text:
    """Format one table row: id and name, CPU, memory and network I/O."""
    id_name = Text.assemble((container.short_id, "bold green"), " ", container.display_name)
    id_name.truncate(NAME_WIDTH, overflow="ellipsis", pad=True)

    cpu = cpu_text(sample.cpu_percentage)
    cpu.pad_left(max(0, 6 - len(cpu)))
    cpu.append("%")

    return Text.assemble(
        id_name,
        " | ",
        cpu,
        " | ",
        f"{sample.memory_usage_mb:9.2f} MB /{sample.memory_limit_mb:9.2f} MB",
        " | ",
        f"{sample.network_rx_mb:5.2f} MB /{sample.network_tx_mb:5.2f} MB",
    )


def vertical_block(container: ContainerRef, sample: ContainerSample) -> list[Text]:
    """Format the lines of one container in vertical layout."""
    cpu = cpu_text(sample.cpu_percentage)
    cpu.append("%")
    return [
        Text.assemble(("Container: ", "bold red"), container.display_name),
        Text.assemble(("  CPU: ", "bold green"), cpu),
        Text.assemble(
            ("  Memory: ", "bold green"),
            f"{sample.memory_usage_mb:.2f} MB / {sample.memory_limit_mb:.2f} MB",
        ),
        Text.assemble(
            ("  Network I/O: ", "bold green"),
            f"{sample.network_rx_mb:.2f} MB / {sample.network_tx_mb:.2f} MB",
        ),
        Text(""),
    ]


class TerminalRenderer:
    """Writes stats batches to the terminal, redrawing in place each cycle."""

    def __init__(self, vertical: bool = False, console: Console | None = None) -> None:
        self._vertical = vertical
        self._console = console or Console(highlight=False, soft_wrap=True)

    @property
    def vertical(self) -> bool:
        return self._vertical

    def clear(self) -> None:
        """Reposition the cursor for the next frame."""
        sequence = CLEAR_SCREEN if self._vertical else CLEAR_BELOW_HEADER
        self._console.file.write(sequence)
        self._console.file.flush()

    def print_header(self) -> None:
        header = (
            f"{'CONTAINER ID / NAME':<46s} | {'CPU %':>7s} | "
            f"{'MEM USAGE / LIMIT':>26s} | {'NET I/O':>12s}"
        )
        self._console.print(header, markup=False)
        self._console.print(SEPARATOR)

    def render(self, batch: list[ContainerStat]) -> None:
        """
        Draw one batch.

        Slots whose fetch failed are left out; the container reappears once
        its stats can be fetched again.
        """
        self.clear()
        if not self._vertical:
            self.print_header()

        for stat in batch:
            if not stat.ok:
                continue
            if self._vertical:
                for line in vertical_block(stat.container, stat.sample):
                    self._console.print(line)
            else:
                self._console.print(horizontal_row(stat.container, stat.sample))

    def print_stopped(self, containers: Iterable[ContainerRef]) -> None:
        """List exited containers once, without stats."""
        stopped = [container for container in containers if container.state == "exited"]
        if not stopped:
            self._console.print("No stopped containers found")
            return

        self.print_header()
        for container in stopped:
            self._console.print(horizontal_row(container, ContainerSample()))

    def print_images(self, images: Iterable[ImageRef]) -> None:
        self._console.print(f"{'REPOSITORY':<40s} {'TAG':<20s} {'IMAGE ID':<15s}", markup=False)
        self._console.print(SEPARATOR)
        for image in images:
            line = f"{image.repository:<40s} {image.tag:<20s} {image.image_id:<15s}"
            self._console.print(line, markup=False)

    def print_lines(self, lines: Iterable[str]) -> None:
        """Echo raw lines, such as build output."""
        for line in lines:
            self._console.print(line, markup=False)
