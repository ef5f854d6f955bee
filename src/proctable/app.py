"""proctable - Textual process table viewer."""

from enum import Enum

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static
from textual.widgets.data_table import CellDoesNotExist, DuplicateKey, RowDoesNotExist

from proctable.config import REFRESH_INTERVAL
from proctable.errors import ProcTableError
from proctable.log import get_logger, setup_logging
from proctable.models import Process
from proctable.table import ProcessReader, default_reader

logger = get_logger("app")


class SortKey(Enum):
    """Sort keys for the process table."""

    PID = "pid"
    PPID = "ppid"
    USER = "user"
    COMMAND = "command"


class SummaryBar(Static):
    """One-line summary of the latest snapshot."""

    DEFAULT_CSS = """
    SummaryBar {
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    def show_snapshot(self, processes: list[Process]) -> None:
        """Show counts for a fresh snapshot."""
        users = {proc.uid for proc in processes if proc.uid is not None}
        self.update(f"Processes: {len(processes)}  Users: {len(users)}")

    def show_error(self, error: ProcTableError) -> None:
        """Show the reason the last snapshot failed."""
        self.update(Text.assemble(("Snapshot failed: ", "red"), str(error)))


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: set[int] = set()
        self._sort_key: SortKey = SortKey.PID

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        self._sort_key = keys[(current_index + 1) % len(keys)]
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("PPID", key="ppid", width=8)
        table.add_column("USER", key="user", width=10)
        table.add_column("S", key="state", width=3)
        table.add_column("Command", key="command")

    def update_processes(self, processes: list[Process]) -> None:
        """
        Update the process table with a new snapshot.

        Rows are diffed by pid; existing rows are updated in place.
        """
        table = self.query_one("#process-table", DataTable)
        new_pids = {proc.pid for proc in processes}

        for pid in self._current_pids - new_pids:
            try:
                table.remove_row(str(pid))
            except RowDoesNotExist:
                pass

        for proc in processes:
            row_key = str(proc.pid)
            if proc.pid in self._current_pids:
                self._update_row(table, row_key, proc)
            else:
                self._add_row(table, row_key, proc)

        self._current_pids = new_pids
        self._sort_rows(table)

    def _sort_rows(self, table: DataTable) -> None:
        """Sort rows by the current sort key."""
        if self._sort_key in (SortKey.PID, SortKey.PPID):
            table.sort(self._sort_key.value, key=int)
        else:
            table.sort(self._sort_key.value, key=lambda cell: str(cell).lower())

    def _cells(self, proc: Process) -> tuple[str | Text, ...]:
        """
        Build the display cells for one process.

        Text cells are wrapped in Text so process and user names are shown
        literally instead of being parsed as markup.
        """
        user = proc.user or (str(proc.uid) if proc.uid is not None else "?")
        return (
            str(proc.pid),
            str(proc.ppid),
            Text(user[:10]),
            Text(proc.state or "?"),
            Text(proc.executable),
        )

    def _update_row(self, table: DataTable, row_key: str, proc: Process) -> None:
        """Update an existing row in place."""
        columns = ("pid", "ppid", "user", "state", "command")
        try:
            for column, value in zip(columns, self._cells(proc)):
                table.update_cell(row_key, column, value)
        except CellDoesNotExist:
            pass  # Row may have been removed

    def _add_row(self, table: DataTable, row_key: str, proc: Process) -> None:
        """Add a new row to the table."""
        try:
            table.add_row(*self._cells(proc), key=row_key)
        except DuplicateKey:
            pass


class ProcTableApp(App):
    """Main proctable application."""

    TITLE = "proctable"
    SUB_TITLE = "Process Table Snapshot"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
        ("r", "refresh", "Refresh"),
    ]

    def __init__(
        self,
        reader: ProcessReader | None = None,
        refresh_interval: float = REFRESH_INTERVAL,
    ) -> None:
        """
        Initialize the ProcTableApp.

        Args:
            reader: Process reader to snapshot with. Defaults to the one for
                the running platform.
            refresh_interval: Seconds between snapshots.
        """
        super().__init__()
        self._reader = reader if reader is not None else default_reader()
        self._refresh_interval = max(0.1, refresh_interval)
        self.last_error: ProcTableError | None = None

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SummaryBar(id="summary")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Take the first snapshot and schedule the rest."""
        self.call_after_refresh(self.take_snapshot)
        self.set_interval(self._refresh_interval, self.take_snapshot)

    def take_snapshot(self) -> None:
        """Read the process table and refresh the UI."""
        summary = self.query_one("#summary", SummaryBar)
        try:
            snapshot = self._reader.processes()
        except ProcTableError as e:
            logger.error("Snapshot failed: %s", e)
            self.last_error = e
            summary.show_error(e)
            return

        self.last_error = None
        summary.show_snapshot(snapshot)
        self.query_one(ProcessTable).update_processes(snapshot)

    def action_sort(self) -> None:
        """Cycle through sort keys and re-sort."""
        process_table = self.query_one(ProcessTable)
        new_sort_key = process_table.cycle_sort()
        self.take_snapshot()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_refresh(self) -> None:
        """Take a snapshot immediately."""
        self.take_snapshot()


def main() -> None:
    """Entry point for the proctable viewer."""
    setup_logging()
    app = ProcTableApp()
    app.run()


if __name__ == "__main__":
    main()
