"""Kernel snapshot reader for Darwin.

The whole process table is fetched with one two-phase sysctl call as an
array of fixed-size ``struct kinfo_proc`` records, then decoded through
KINFO_SCHEMA. Only this module knows the binary layout.
"""

import ctypes
import os
import struct
from collections.abc import Callable, Iterator
from typing import Any, NamedTuple

from proctable.accounts import AccountTable, get_account_table
from proctable.config import CTL_KERN, KERN_PROC, KERN_PROC_ALL, KINFO_STRUCT_SIZE
from proctable.errors import EnumerationError
from proctable.log import get_logger
from proctable.models import Process

logger = get_logger("kinfo")

# Leading records that are kernel-internal placeholders, not processes.
# Not verified at runtime; tied to the kernel's allproc ordering.
KINFO_SKIP_RECORDS = 1

MAXCOMLEN = 16


class Field(NamedTuple):
    """One field of a fixed-layout binary record."""

    name: str
    offset: int
    fmt: str  # struct format, byte order included

    @property
    def width(self) -> int:
        """Get the field size in bytes."""
        return struct.calcsize(self.fmt)


# struct kinfo_proc, 64-bit Darwin (sys/sysctl.h, sys/proc.h)
KINFO_SCHEMA: tuple[Field, ...] = (
    Field("stat", 36, "<B"),  # kp_proc.p_stat
    Field("pid", 40, "<i"),  # kp_proc.p_pid
    Field("comm", 243, f"<{MAXCOMLEN}s"),  # kp_proc.p_comm
    Field("uid", 420, "<I"),  # kp_eproc.e_ucred.cr_uid
    Field("ppid", 560, "<i"),  # kp_eproc.e_ppid
    Field("pgrp", 564, "<i"),  # kp_eproc.e_pgid
)

# p_stat values mapped to the letters ps(1) shows. Codes outside this table
# become "?"; the raw number is still in the "stat" field of iter_records().
STATE_CODES = {
    1: "I",  # SIDL
    2: "R",  # SRUN
    3: "S",  # SSLEEP
    4: "T",  # SSTOP
    5: "Z",  # SZOMB
}


def decode_cstring(raw: bytes) -> str:
    """Decode a NUL-padded C string, ignoring everything after the first NUL."""
    end = raw.find(b"\x00")
    if end != -1:
        raw = raw[:end]
    return raw.decode("utf-8", errors="replace")


def decode_record(
    buf: bytes | memoryview,
    base: int = 0,
    schema: tuple[Field, ...] = KINFO_SCHEMA,
) -> dict[str, Any]:
    """
    Decode one record starting at byte ``base`` of ``buf``.

    Raises:
        struct.error: If a field would extend past the end of buf.
    """
    return {f.name: struct.unpack_from(f.fmt, buf, base + f.offset)[0] for f in schema}


def iter_records(
    buf: bytes | memoryview,
    stride: int = KINFO_STRUCT_SIZE,
    schema: tuple[Field, ...] = KINFO_SCHEMA,
) -> Iterator[dict[str, Any]]:
    """
    Decode every whole ``stride``-sized record in buf.

    A trailing partial record is discarded without being read.
    """
    count = len(buf) // stride
    if len(buf) % stride:
        logger.debug("Discarding %d trailing bytes of partial record", len(buf) % stride)
    for i in range(count):
        yield decode_record(buf, i * stride, schema)


def fetch_proc_table() -> bytes:
    """
    Fetch the raw kinfo_proc array with sysctl(KERN_PROC_ALL).

    The first call asks for the buffer size, the second fills a buffer of
    exactly that size.

    Raises:
        EnumerationError: If either sysctl call fails.
    """
    libc = ctypes.CDLL(None, use_errno=True)
    sysctl = libc.sysctl
    sysctl.argtypes = [
        ctypes.POINTER(ctypes.c_int),
        ctypes.c_uint,
        ctypes.c_void_p,
        ctypes.POINTER(ctypes.c_size_t),
        ctypes.c_void_p,
        ctypes.c_size_t,
    ]
    sysctl.restype = ctypes.c_int

    mib = (ctypes.c_int * 4)(CTL_KERN, KERN_PROC, KERN_PROC_ALL, 0)
    size = ctypes.c_size_t(0)

    if sysctl(mib, len(mib), None, ctypes.byref(size), None, 0) != 0:
        _raise_sysctl_error("size query")

    buf = ctypes.create_string_buffer(size.value)
    if sysctl(mib, len(mib), buf, ctypes.byref(size), None, 0) != 0:
        _raise_sysctl_error("fetch")

    # The kernel reports how much it actually wrote
    return buf.raw[: size.value]


def _raise_sysctl_error(phase: str) -> None:
    """Log and raise the sysctl failure recorded in the ctypes errno."""
    err = ctypes.get_errno()
    msg = f"sysctl KERN_PROC_ALL {phase} failed: {os.strerror(err)}"
    logger.error(msg)
    raise EnumerationError(msg, errno=err)


class KernelSnapshotReader:
    """
    Process reader backed by a single kernel snapshot.

    Each call fetches and decodes a fresh buffer; nothing is cached.
    """

    def __init__(
        self,
        accounts: AccountTable | None = None,
        fetch: Callable[[], bytes] = fetch_proc_table,
    ) -> None:
        """
        Initialize the KernelSnapshotReader.

        Args:
            accounts: Table used to resolve user names. Defaults to the
                shared table loaded from the account database.
            fetch: Callable returning the raw kinfo_proc array.
        """
        self._accounts = accounts if accounts is not None else get_account_table()
        self._fetch = fetch

    def processes(self) -> list[Process]:
        """Get all processes in kernel order."""
        buf = self._fetch()
        records = iter_records(memoryview(buf))
        for _ in range(KINFO_SKIP_RECORDS):
            next(records, None)
        return [self._to_process(record) for record in records]

    def find_process(self, pid: int) -> Process | None:
        """Get the process with the given pid, or None if it does not exist."""
        for proc in self.processes():
            if proc.pid == pid:
                return proc
        return None

    def _to_process(self, record: dict[str, Any]) -> Process:
        """Normalize one decoded kinfo_proc record into a Process."""
        uid = record["uid"]
        return Process(
            pid=record["pid"],
            ppid=record["ppid"],
            executable=decode_cstring(record["comm"]),
            uid=uid,
            user=self._accounts.lookup(uid),
            state=STATE_CODES.get(record["stat"], "?"),
            pgrp=record["pgrp"],
        )
