"""Data models for proctable."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Process:
    """Immutable snapshot of one process table entry.

    Every reader normalizes its raw data into this shape. Fields the source
    does not expose are None.
    """

    pid: int
    ppid: int  # 0 when there is no parent
    executable: str  # Command name, not a path
    uid: int | None = None
    user: str = ""  # Resolved from uid at decode time
    state: str | None = None  # 'R', 'S', 'Z', 'D', etc.
    pgrp: int | None = None
    sid: int | None = None
