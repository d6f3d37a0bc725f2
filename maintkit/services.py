"""
Collaborator interfaces consumed by maintenance scripts.

The framework does not own database access, replication or configuration; it
talks to them through the narrow protocols below. MappingConfig, MemoryDatastore
and ImmediateReplication are small in-process implementations, good enough for
single-host tooling and for tests.
"""
import copy
import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Config(Protocol):
    def get(self, key: str) -> Any: ...


@runtime_checkable
class Datastore(Protocol):
    def begin(self, fname: str) -> None: ...

    def commit(self, fname: str) -> None: ...

    def rollback(self, fname: str) -> None: ...

    def select_row(self, table: str, fields: str, conds: Mapping[str, Any], fname: str) -> Mapping[str, Any] | None: ...

    def insert(self, table: str, row: Mapping[str, Any], fname: str, *, ignore: bool = False) -> bool: ...

    def delete(self, table: str, conds: Mapping[str, Any], fname: str) -> int: ...


@runtime_checkable
class ReplicationWaiter(Protocol):
    def wait_for_replication(self, *, timeout: float, if_writes_since: float) -> None:
        """block until replicas caught up; raises ReplicationWaitTimeout when they did not."""


class MappingConfig(Mapping):
    """
    read-only configuration backed by a plain mapping.
    """

    def __init__(self, values=None, /):
        self._values = dict(values or {})

    def __getitem__(self, key):
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def get(self, key, default=None):
        return self._values.get(key, default)


class ImmediateReplication:
    """replication waiter for setups without replicas: returns at once."""

    def wait_for_replication(self, *, timeout, if_writes_since):
        logger.debug("no replicas to wait for (timeout=%s, since=%s)", timeout, if_writes_since)


class MemoryDatastore:
    """
    in-memory tables of dict rows with snapshot-based transactions.

    unique keys can be declared per table; inserting a duplicate either fails
    (returns False) or, with ignore=True, is silently skipped.
    """

    def __init__(self, unique=None):
        self.tables = {}
        self.unique = dict(unique or {})
        self._snapshot = None

    def _rows(self, table):
        return self.tables.setdefault(table, [])

    @staticmethod
    def _matches(row, conds):
        return all(row.get(key) == value for key, value in conds.items())

    def begin(self, fname):
        if self._snapshot is not None:
            raise RuntimeError("%s: a transaction is already open" % fname)
        self._snapshot = copy.deepcopy(self.tables)

    def commit(self, fname):
        self._snapshot = None

    def rollback(self, fname):
        if self._snapshot is not None:
            self.tables = self._snapshot
            self._snapshot = None

    def select_row(self, table, fields, conds, fname):
        for row in self._rows(table):
            if self._matches(row, conds):
                return dict(row)
        return None

    def insert(self, table, row, fname, *, ignore=False):
        rows = self._rows(table)
        keys = self.unique.get(table, ())
        if keys and any(all(existing.get(key) == row.get(key) for key in keys) for existing in rows):
            return ignore
        rows.append(dict(row))
        return True

    def delete(self, table, conds, fname):
        rows = self._rows(table)
        kept = [row for row in rows if not self._matches(row, conds)]
        self.tables[table] = kept
        return len(rows) - len(kept)


__all__ = (
    "Config",
    "Datastore",
    "ReplicationWaiter",
    "MappingConfig",
    "ImmediateReplication",
    "MemoryDatastore",
)
