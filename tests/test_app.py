"""Tests for the proctable viewer."""

import pytest
from textual.widgets import DataTable

from proctable.app import ProcessTable, ProcTableApp, SortKey
from proctable.errors import EnumerationError
from proctable.models import Process


class StaticReader:
    """Reader serving a sequence of snapshots, repeating the last one."""

    def __init__(self, *snapshots: list[Process]) -> None:
        self._snapshots = list(snapshots)

    def processes(self) -> list[Process]:
        if len(self._snapshots) > 1:
            return self._snapshots.pop(0)
        return list(self._snapshots[0])

    def find_process(self, pid: int) -> Process | None:
        return next((p for p in self.processes() if p.pid == pid), None)


class BrokenReader:
    """Reader whose every snapshot fails."""

    def processes(self) -> list[Process]:
        raise EnumerationError("cannot list /proc")

    def find_process(self, pid: int) -> Process | None:
        raise EnumerationError("cannot list /proc")


SNAPSHOT = [
    Process(pid=1, ppid=0, executable="init", uid=0, user="root", state="S"),
    Process(pid=300, ppid=1, executable="zsh", uid=501, user="alice", state="S"),
    Process(pid=42, ppid=1, executable="Bash", uid=502, user="bob", state="R"),
]


def make_app(*snapshots: list[Process]) -> ProcTableApp:
    return ProcTableApp(reader=StaticReader(*snapshots), refresh_interval=60.0)


class TestSortKey:
    """Tests for SortKey enum."""

    def test_sort_key_values(self):
        """Test SortKey enum has expected values."""
        assert SortKey.PID.value == "pid"
        assert SortKey.PPID.value == "ppid"
        assert SortKey.USER.value == "user"
        assert SortKey.COMMAND.value == "command"

    def test_sort_key_members(self):
        """Test SortKey enum has all expected members."""
        assert list(SortKey) == [SortKey.PID, SortKey.PPID, SortKey.USER, SortKey.COMMAND]


def test_app_creation():
    """Test ProcTableApp can be instantiated."""
    app = make_app(SNAPSHOT)
    assert app.title == "proctable"
    assert app.sub_title == "Process Table Snapshot"


@pytest.mark.asyncio
async def test_app_compose():
    """Test ProcTableApp composes correctly."""
    app = make_app(SNAPSHOT)
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#summary") is not None
        assert pilot.app.query_one("#process-table") is not None


@pytest.mark.asyncio
async def test_app_shows_snapshot():
    """Test the first snapshot fills the table, sorted by pid."""
    app = make_app(SNAPSHOT)
    async with app.run_test() as pilot:
        await pilot.pause()
        table = pilot.app.query_one("#process-table", DataTable)

        assert table.row_count == 3
        assert [table.get_row_at(i)[0] for i in range(3)] == ["1", "42", "300"]


@pytest.mark.asyncio
async def test_app_removes_exited_processes():
    """Test a process missing from the next snapshot loses its row."""
    app = make_app(SNAPSHOT, SNAPSHOT[:2])
    async with app.run_test() as pilot:
        await pilot.pause()
        await pilot.press("r")
        await pilot.pause()
        table = pilot.app.query_one("#process-table", DataTable)

        assert table.row_count == 2
        assert "42" not in {table.get_row_at(i)[0] for i in range(2)}


@pytest.mark.asyncio
async def test_app_survives_reader_failure():
    """Test a failing snapshot is reported instead of crashing the app."""
    app = ProcTableApp(reader=BrokenReader(), refresh_interval=60.0)
    async with app.run_test() as pilot:
        await pilot.pause()
        table = pilot.app.query_one("#process-table", DataTable)

        assert isinstance(pilot.app.last_error, EnumerationError)
        assert table.row_count == 0


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' binding triggers quit."""
    app = make_app(SNAPSHOT)
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert pilot.app._exit


@pytest.mark.asyncio
async def test_app_sort_binding():
    """Test that F6 binding cycles sort key."""
    app = make_app(SNAPSHOT)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        initial_sort = process_table.sort_key

        await pilot.press("f6")

        assert process_table.sort_key != initial_sort


@pytest.mark.asyncio
async def test_process_table_cycle_sort():
    """Test ProcessTable sort key cycling."""
    app = make_app(SNAPSHOT)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        assert process_table.sort_key == SortKey.PID

        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.PPID

        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.USER

        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.COMMAND

        # Should wrap back to PID
        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.PID


@pytest.mark.asyncio
async def test_process_table_sorts_by_command_case_insensitive():
    """Test sorting by command ignores case."""
    app = make_app(SNAPSHOT)
    async with app.run_test() as pilot:
        await pilot.pause()
        process_table = pilot.app.query_one(ProcessTable)
        for _ in range(3):
            process_table.cycle_sort()
        process_table.update_processes(SNAPSHOT)
        table = pilot.app.query_one("#process-table", DataTable)

        assert [str(table.get_row_at(i)[4]) for i in range(3)] == ["Bash", "init", "zsh"]


@pytest.mark.asyncio
async def test_process_table_updates_existing_row():
    """Test a changed process is updated in place."""
    app = make_app(SNAPSHOT)
    async with app.run_test() as pilot:
        await pilot.pause()
        process_table = pilot.app.query_one(ProcessTable)
        changed = [*SNAPSHOT[:2], Process(pid=42, ppid=1, executable="Bash", uid=502, user="bob", state="Z")]

        process_table.update_processes(changed)
        table = pilot.app.query_one("#process-table", DataTable)

        assert str(table.get_row("42")[3]) == "Z"


@pytest.mark.asyncio
async def test_process_table_unknown_user_shows_uid():
    """Test a process with no resolved user name shows its uid."""
    app = make_app([Process(pid=9, ppid=1, executable="svc", uid=7777)])
    async with app.run_test() as pilot:
        await pilot.pause()
        table = pilot.app.query_one("#process-table", DataTable)

        assert str(table.get_row("9")[2]) == "7777"


@pytest.mark.asyncio
async def test_process_table_shows_markup_names_literally():
    """Test names that look like markup render verbatim without crashing."""
    app = make_app(
        [
            Process(pid=5, ppid=1, executable="evil[/]", uid=0, user="root"),
            Process(pid=6, ppid=1, executable="[red]x", uid=0, user="[b]mallory"),
        ]
    )
    async with app.run_test() as pilot:
        await pilot.pause()
        table = pilot.app.query_one("#process-table", DataTable)

        assert table.row_count == 2
        assert str(table.get_row("5")[4]) == "evil[/]"
        assert str(table.get_row("6")[4]) == "[red]x"
        assert str(table.get_row("6")[2]) == "[b]mallory"


@pytest.mark.asyncio
async def test_process_table_updates_markup_name_in_place():
    """Test a renamed process with a markup-like name updates verbatim."""
    app = make_app(SNAPSHOT)
    async with app.run_test() as pilot:
        await pilot.pause()
        process_table = pilot.app.query_one(ProcessTable)
        renamed = [*SNAPSHOT[:2], Process(pid=42, ppid=1, executable="b[/]ash", uid=502, user="bob")]

        process_table.update_processes(renamed)
        await pilot.pause()
        table = pilot.app.query_one("#process-table", DataTable)

        assert str(table.get_row("42")[4]) == "b[/]ash"


@pytest.mark.asyncio
async def test_summary_shows_error_text_literally():
    """Test an error message containing markup does not break the summary."""

    class MarkupErrorReader(BrokenReader):
        def processes(self) -> list[Process]:
            raise EnumerationError("cannot list [/]proc")

    app = ProcTableApp(reader=MarkupErrorReader(), refresh_interval=60.0)
    async with app.run_test() as pilot:
        await pilot.pause()

        assert str(pilot.app.last_error) == "cannot list [/]proc"
