"""User account table loaded from the system account database."""

import threading
from collections.abc import Iterable, Iterator, Mapping
from os import PathLike

from proctable.config import PASSWD_PATH
from proctable.log import get_logger

logger = get_logger("accounts")


class AccountTable(Mapping[int, str]):
    """
    Read-only mapping from numeric user id to user name.

    Lookups are best-effort: an unknown uid resolves to an empty string
    through lookup(), never an error.
    """

    __slots__ = ("_names",)

    def __init__(self, names: Mapping[int, str] | None = None) -> None:
        self._names: dict[int, str] = dict(names or {})

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "AccountTable":
        """
        Build a table from passwd-format lines.

        Lines with fewer than three colon-separated fields, or whose third
        field is not a plain decimal integer, are skipped.
        """
        names: dict[int, str] = {}
        for line in lines:
            fields = line.rstrip("\n").split(":")
            if len(fields) < 3:
                continue
            # Plain decimal only; int() would also take " 501", "+5" and "5_01"
            if not (fields[2].isascii() and fields[2].isdigit()):
                continue
            names[int(fields[2])] = fields[0]
        return cls(names)

    @classmethod
    def load(cls, path: str | PathLike[str] = PASSWD_PATH) -> "AccountTable":
        """
        Load the account database at path.

        A missing or unreadable database yields an empty table.
        """
        try:
            with open(path, encoding="utf-8", errors="replace") as f:
                table = cls.from_lines(f)
        except OSError as e:
            logger.debug("Account database %s unavailable: %s", path, e)
            return cls()

        logger.debug("Loaded %d accounts from %s", len(table), path)
        return table

    def lookup(self, uid: int | None) -> str:
        """Get the user name for uid, or an empty string if unknown."""
        if uid is None:
            return ""
        return self._names.get(uid, "")

    def __getitem__(self, uid: int) -> str:
        """Get the user name for uid, raising KeyError if unknown."""
        return self._names[uid]

    def __iter__(self) -> Iterator[int]:
        """Iterate over the known uids."""
        return iter(self._names)

    def __len__(self) -> int:
        """Get the number of known accounts."""
        return len(self._names)

    def __repr__(self) -> str:
        """Summarize the table without listing account names."""
        return f"AccountTable({len(self._names)} accounts)"


_shared_table: AccountTable | None = None
_shared_lock = threading.Lock()


def get_account_table() -> AccountTable:
    """
    Get the process-wide account table, loading it on first use.

    The load happens exactly once, under a lock; the table is never mutated
    afterwards so readers need no further synchronization.
    """
    global _shared_table
    if _shared_table is None:
        with _shared_lock:
            if _shared_table is None:
                _shared_table = AccountTable.load()
    return _shared_table
