"""Exception hierarchy for proctable.

Callers must be able to tell "nothing matched" apart from "something went
wrong", so lookups that find nothing return None and every failure is one of
the exceptions below.
"""


class ProcTableError(Exception):
    """Base class for all proctable errors."""


class EnumerationError(ProcTableError):
    """The process table itself could not be read.

    Raised when the kernel call or the pseudo-filesystem listing fails. No
    partial results accompany it.
    """

    def __init__(self, msg: str, errno: int | None = None) -> None:
        super().__init__(msg)
        self.errno = errno


class NoSuchProcess(ProcTableError):
    """The process exited between being listed and being read."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"process no longer exists (pid={pid})")
        self.pid = pid


class ProcessDecodeError(ProcTableError):
    """A process exists but its record could not be decoded."""

    def __init__(self, pid: int, reason: str) -> None:
        super().__init__(f"cannot decode process record (pid={pid}): {reason}")
        self.pid = pid
        self.reason = reason


class UnsupportedPlatformError(ProcTableError):
    """No process reader exists for the running platform."""
