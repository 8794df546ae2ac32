"""sgxtop - Main Textual application."""

import sys
from collections.abc import Sequence
from queue import Empty, Queue

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from sgxtop.config import Config, load_config
from sgxtop.logging_setup import logging_config, setup_logging
from sgxtop.monitor import EnclaveMonitor, PollFailure
from sgxtop.ranking import COLUMNS, Frame

COLUMN_WIDTHS = (7, 11, 12, 12, 12, None)


class HeaderStats(Static):
    """Header widget showing enclave counts, EPC usage and paging rates."""

    DEFAULT_CSS = """
    HeaderStats {
        height: 3;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__("Waiting for first poll...", *args, **kwargs)
        self._lines: tuple[str, ...] = ()

    @property
    def lines(self) -> tuple[str, ...]:
        """Header lines currently shown."""
        return self._lines

    def update_header(self, lines: tuple[str, ...]) -> None:
        """Replace the header lines."""
        self._lines = lines
        self.update("\n".join(lines))


class EnclaveTable(Container):
    """Container for the enclave data table."""

    DEFAULT_CSS = """
    EnclaveTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize EnclaveTable."""
        super().__init__(*args, **kwargs)
        self._row_count = 0
        self._visible_rows = 0

    @property
    def row_count(self) -> int:
        """Number of rows currently drawn."""
        return self._row_count

    def compose(self) -> ComposeResult:
        """Compose the enclave table."""
        yield DataTable(id="enclave-table", zebra_stripes=True)

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#enclave-table", DataTable)
        table.cursor_type = "row"
        for column, width in zip(COLUMNS, COLUMN_WIDTHS):
            table.add_column(column, key=column.lower(), width=width)

    @property
    def visible_rows(self) -> int:
        """Rows that fit below the column header."""
        return self._visible_rows

    def on_resize(self, event: events.Resize) -> None:
        """Recompute how many rows fit."""
        # Column header takes one line of the content area.
        self._visible_rows = max(self.size.height - 1, 0)

    def apply_frame(self, frame: Frame) -> None:
        """
        Draw a frame's rows.

        Existing rows are updated cell by cell, new rows are appended, and
        rows left over from a longer previous frame are removed.
        """
        table = self.query_one("#enclave-table", DataTable)

        for index, cells in enumerate(frame.rows):
            row_key = f"row-{index}"
            if index < self._row_count:
                for column, value in zip(COLUMNS, cells):
                    table.update_cell(row_key, column.lower(), value)
            else:
                table.add_row(*cells, key=row_key)

        for index in frame.cleared_rows:
            table.remove_row(f"row-{index}")

        self._row_count = len(frame.rows)


class SgxtopApp(App):
    """Main sgxtop application."""

    TITLE = "sgxtop"
    SUB_TITLE = "SGX Enclave Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, config: Config | None = None) -> None:
        """Initialize the SgxtopApp."""
        super().__init__()
        self._config = config or Config()
        self._update_queue: Queue[Frame | PollFailure] = Queue()
        self._monitor = EnclaveMonitor(self._update_queue, self._config, capacity=self._row_capacity)
        self._table = EnclaveTable()

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield self._table
        yield Footer()

    def on_mount(self) -> None:
        """Start the enclave monitor when the app is mounted."""
        self._monitor.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(0.25, self._check_for_updates)

    def _row_capacity(self) -> int:
        """Called from the monitor thread; reads the last measured table height."""
        rows = self._table.visible_rows
        if self._config.max_rows is not None:
            rows = min(rows, self._config.max_rows)
        return rows

    def _check_for_updates(self) -> None:
        """Drain the queue and draw the most recent frame."""
        frames: list[Frame] = []
        while True:
            try:
                item = self._update_queue.get_nowait()
            except Empty:
                break
            if isinstance(item, PollFailure):
                self._fail(item)
                return
            frames.append(item)

        # Every frame's cleared rows must be applied, so draw them in order.
        for frame in frames:
            self.apply_frame(frame)

    def apply_frame(self, frame: Frame) -> None:
        """Update the UI with a new frame."""
        self.query_one("#header-stats", HeaderStats).update_header(frame.header)
        self.query_one(EnclaveTable).apply_frame(frame)
        self.sub_title = f"{frame.total} enclaves"

    def _fail(self, failure: PollFailure) -> None:
        self._monitor.stop(timeout=0)
        self.exit(return_code=1, message=failure.message)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for sgxtop application."""
    config = load_config(argv)
    setup_logging(logging_config(config))
    app = SgxtopApp(config)
    app.run()
    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()
