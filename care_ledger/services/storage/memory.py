"""
In-Memory Storage Implementation

Holds every table as a list of row dicts inside the process.
Used for local development and by the test-suite; it follows the same
contract as the hosted backend (server-assigned ids and timestamps,
equality filters, single-row updates).
"""

import copy
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import uuid4

from care_ledger.services.storage.interface import (
    DataGatewayInterface,
    NotFoundError,
    Row,
    StorageError,
    column_value,
)


class InMemoryGateway(DataGatewayInterface):
    """Process-local data store."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._tables: dict[str, list[Row]] = defaultdict(list)
        self._clock = clock or datetime.utcnow
        # (operation, table) in call order
        self.calls: list[tuple[str, str]] = []

    def seed(self, table: str, rows: list[Row]) -> list[Row]:
        """Load rows directly, bypassing call tracking."""
        return [self._store(table, row) for row in rows]

    def rows(self, table: str) -> list[Row]:
        """Snapshot of a table's rows."""
        return copy.deepcopy(self._tables[table])

    def _store(self, table: str, row: Row) -> Row:
        now = self._clock().isoformat()
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", now)
        stored.setdefault("updated_at", now)
        self._tables[table].append(stored)
        return copy.deepcopy(stored)

    @staticmethod
    def _matches(row: Row, filters: Optional[dict[str, Any]]) -> bool:
        if not filters:
            return True
        return all(
            column_value(row.get(column)) == column_value(value)
            for column, value in filters.items()
        )

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        columns: Optional[list[str]] = None,
    ) -> list[Row]:
        self.calls.append(("select", table))
        rows = [r for r in self._tables[table] if self._matches(r, filters)]

        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: column_value(r[order_by]), reverse=descending)
            rows = present + missing

        if columns:
            rows = [{c: r.get(c) for c in columns} for r in rows]

        return copy.deepcopy(rows)

    async def insert(self, table: str, rows: list[Row]) -> list[Row]:
        self.calls.append(("insert", table))
        if not rows:
            raise StorageError("Nothing to insert")
        return [self._store(table, row) for row in rows]

    async def update(
        self,
        table: str,
        values: Row,
        filters: dict[str, Any],
    ) -> Row:
        self.calls.append(("update", table))
        matches = [r for r in self._tables[table] if self._matches(r, filters)]

        if not matches:
            raise NotFoundError(f"No {table} row matches {filters}")
        if len(matches) > 1:
            raise StorageError(f"Update matched {len(matches)} {table} rows, expected one")

        row = matches[0]
        row.update(copy.deepcopy(values))
        row["updated_at"] = self._clock().isoformat()
        return copy.deepcopy(row)

    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        self.calls.append(("delete", table))
        before = len(self._tables[table])
        self._tables[table] = [
            r for r in self._tables[table] if not self._matches(r, filters)
        ]
        return before - len(self._tables[table])
