"""
Persistence collaborator.

The optimizer and its extensions treat storage as a keyed append/query
service: tables are created (or replaced) by name, rows are appended in
iteration order and read back by simple equality filters. ``MemoryStorage``
keeps everything in process and can be written to / read from a checkpoint
file.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Protocol, runtime_checkable

from .checkpoint import load_checkpoint, save_checkpoint
from .exceptions import StorageError

if TYPE_CHECKING:
    import pandas as pd


def _logger() -> logging.Logger:
    return logging.getLogger(__name__)


@runtime_checkable
class Storage(Protocol):
    """Keyed append/query store used for run history and extension bookkeeping."""

    def create_table(self, name: str, *, replace: bool = True) -> None: ...

    def has_table(self, name: str) -> bool: ...

    def append(self, table: str, row: Mapping[str, Any]) -> int: ...

    def rows(self, table: str, **filters: Any) -> list[dict[str, Any]]: ...

    def last(self, table: str) -> dict[str, Any] | None: ...


class MemoryStorage:
    """In-process table store.

    Rows are copied on append and on read so callers never share mutable
    state with the store. Each row gets an ``id`` column (1-based insert
    order per table).
    """

    def __init__(self) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = {}

    @property
    def tables(self) -> list[str]:
        return list(self._tables)

    def create_table(self, name: str, *, replace: bool = True) -> None:
        if name in self._tables and not replace:
            return
        self._tables[name] = []

    def has_table(self, name: str) -> bool:
        return name in self._tables

    def _table(self, name: str) -> list[dict[str, Any]]:
        try:
            return self._tables[name]
        except KeyError:
            raise StorageError(f"Table '{name}' does not exist", table=name) from None

    def append(self, table: str, row: Mapping[str, Any]) -> int:
        rows = self._table(table)
        record = copy.deepcopy(dict(row))
        record["id"] = len(rows) + 1
        rows.append(record)
        return record["id"]

    def rows(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        selected = [
            row for row in self._table(table) if all(row.get(key) == val for key, val in filters.items())
        ]
        return copy.deepcopy(selected)

    def last(self, table: str) -> dict[str, Any] | None:
        rows = self._table(table)
        return copy.deepcopy(rows[-1]) if rows else None

    def to_frame(self, table: str) -> "pd.DataFrame":
        """Return a table as a pandas DataFrame (one column per row key)."""
        import pandas as pd

        return pd.DataFrame.from_records(self.rows(table))

    def save(self, path: str | Path) -> Path:
        out = save_checkpoint(path, {"tables": self._tables})
        _logger().info("Storage saved to %s", out)
        return out

    @classmethod
    def load(cls, path: str | Path) -> "MemoryStorage":
        payload = load_checkpoint(path)
        storage = cls()
        storage._tables = {name: list(rows) for name, rows in payload.get("tables", {}).items()}
        return storage


__all__ = ["Storage", "MemoryStorage"]
