"""Process lookup and enumeration entry points."""

import sys
from typing import Protocol

from proctable.accounts import AccountTable
from proctable.errors import UnsupportedPlatformError
from proctable.models import Process


class ProcessReader(Protocol):
    """A platform strategy that can snapshot the process table."""

    def processes(self) -> list[Process]: ...

    def find_process(self, pid: int) -> Process | None: ...


def default_reader(
    accounts: AccountTable | None = None,
    platform: str = sys.platform,
) -> ProcessReader:
    """
    Create the process reader for the given platform.

    Args:
        accounts: Table used to resolve user names. Defaults to the shared
            table loaded from the account database.
        platform: A sys.platform value.

    Raises:
        UnsupportedPlatformError: If there is no reader for the platform.
    """
    if platform == "darwin":
        from proctable.kinfo import KernelSnapshotReader

        return KernelSnapshotReader(accounts=accounts)
    if platform.startswith(("linux", "sunos")):
        from proctable.procfs import ProcFsReader

        return ProcFsReader(accounts=accounts)
    raise UnsupportedPlatformError(f"no process reader for platform {platform!r}")


def processes(reader: ProcessReader | None = None) -> list[Process]:
    """
    Take a snapshot of every running process.

    Order is whatever the platform reports; sort explicitly if it matters.
    """
    if reader is None:
        reader = default_reader()
    return reader.processes()


def find_process(pid: int, reader: ProcessReader | None = None) -> Process | None:
    """
    Look up one process by pid.

    Returns None when no such process exists. Reader failures propagate as
    ProcTableError subclasses.
    """
    if reader is None:
        reader = default_reader()
    return reader.find_process(pid)
