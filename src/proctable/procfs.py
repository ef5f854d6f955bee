"""Proc-filesystem reader for Linux and Solaris.

Every live process has a numeric directory under the proc root; its ``stat``
file holds one line of the form::

    pid (comm) state ppid pgrp session tty_nr ...

The comm field may itself contain spaces and parentheses, so it is taken as
everything between the first '(' and the last ')'.
"""

import os
import stat
from os import PathLike
from pathlib import Path

from proctable.accounts import AccountTable, get_account_table
from proctable.config import PROC_ROOT
from proctable.errors import EnumerationError, NoSuchProcess, ProcessDecodeError
from proctable.log import get_logger
from proctable.models import Process

logger = get_logger("procfs")

# Token positions after the closing ')' of the comm field
STAT_STATE = 0
STAT_PPID = 1
STAT_PGRP = 2
STAT_SID = 3

_VANISHED = (FileNotFoundError, ProcessLookupError)


def parse_stat(pid: int, text: str) -> tuple[str, str, int, int, int]:
    """
    Parse the contents of a /proc/<pid>/stat file.

    Returns:
        Tuple of (executable, state, ppid, pgrp, sid).

    Raises:
        ProcessDecodeError: If the text does not match the stat format.
    """
    start = text.find("(")
    end = text.rfind(")")
    if start == -1 or end < start:
        raise ProcessDecodeError(pid, "missing command name")

    executable = text[start + 1 : end]
    fields = text[end + 1 :].split()
    if len(fields) <= STAT_SID:
        raise ProcessDecodeError(pid, f"expected at least {STAT_SID + 1} fields, got {len(fields)}")

    state = fields[STAT_STATE]
    if len(state) != 1:
        raise ProcessDecodeError(pid, f"bad state {state!r}")
    try:
        ppid = int(fields[STAT_PPID])
        pgrp = int(fields[STAT_PGRP])
        sid = int(fields[STAT_SID])
    except ValueError as e:
        raise ProcessDecodeError(pid, str(e)) from e

    return executable, state, ppid, pgrp, sid


class ProcFsReader:
    """
    Process reader backed by the proc pseudo-filesystem.

    Entries are read one at a time, so a snapshot is best-effort: processes
    that exit mid-scan are left out rather than failing the scan.
    """

    def __init__(
        self,
        root: str | PathLike[str] = PROC_ROOT,
        accounts: AccountTable | None = None,
    ) -> None:
        """
        Initialize the ProcFsReader.

        Args:
            root: Mount point of the proc filesystem.
            accounts: Table used to resolve user names. Defaults to the
                shared table loaded from the account database.
        """
        self._root = Path(root)
        self._accounts = accounts if accounts is not None else get_account_table()

    @property
    def root(self) -> Path:
        """Get the proc filesystem root."""
        return self._root

    def processes(self) -> list[Process]:
        """
        Get all processes currently listed under the proc root.

        Raises:
            EnumerationError: If the proc root cannot be listed.
        """
        try:
            entries = list(os.scandir(self._root))
        except OSError as e:
            logger.error("Cannot list %s: %s", self._root, e)
            raise EnumerationError(f"cannot list {self._root}: {e}", errno=e.errno) from e

        results: list[Process] = []
        for entry in entries:
            name = entry.name
            # Only directories named with a leading digit are processes
            if not ("0" <= name[0] <= "9"):
                continue
            try:
                if not entry.is_dir():
                    continue
            except OSError:
                continue

            if not (name.isascii() and name.isdigit()):
                continue
            pid = int(name)

            try:
                results.append(self._read_process(pid))
            except NoSuchProcess:
                logger.debug("Process %d exited during scan", pid)
            except ProcessDecodeError as e:
                logger.debug("Skipping process: %s", e)

        return results

    def find_process(self, pid: int) -> Process | None:
        """
        Get the process with the given pid, or None if it does not exist.

        Raises:
            ProcessDecodeError: If the process exists but its record is corrupt.
            EnumerationError: If the process directory cannot be checked.
        """
        try:
            st = os.stat(self._root / str(pid))
        except _VANISHED:
            return None
        except OSError as e:
            raise EnumerationError(f"cannot stat process {pid}: {e}", errno=e.errno) from e
        if not stat.S_ISDIR(st.st_mode):
            return None

        try:
            return self._read_process(pid)
        except NoSuchProcess:
            return None

    def _read_process(self, pid: int) -> Process:
        """Read and decode one process directory."""
        proc_dir = self._root / str(pid)
        try:
            with open(proc_dir / "stat", encoding="utf-8", errors="replace") as f:
                text = f.read()
            uid = os.stat(proc_dir).st_uid
        except _VANISHED as e:
            raise NoSuchProcess(pid) from e
        except OSError as e:
            raise ProcessDecodeError(pid, str(e)) from e

        executable, state, ppid, pgrp, sid = parse_stat(pid, text)
        return Process(
            pid=pid,
            ppid=ppid,
            executable=executable,
            uid=uid,
            user=self._accounts.lookup(uid),
            state=state,
            pgrp=pgrp,
            sid=sid,
        )
