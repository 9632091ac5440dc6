"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the hosted store (Google Sheets today) for a real database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Tables are addressed by name and rows are plain dicts with snake_case
columns; every read and write is narrowed by equality filters
(owner, tenant, id, period keys).
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from care_ledger.models.audit import AuditEvent
from care_ledger.models.ledger import LedgerIdentity, ResidentFee


Row = dict[str, Any]


def column_value(value: Any) -> Any:
    """Plain column representation of a filter or row value."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class DataGatewayInterface(ABC):
    """
    Abstract interface for the relational data store.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        columns: Optional[list[str]] = None,
    ) -> list[Row]:
        """
        Read rows matching every equality filter.

        Args:
            table: Table name
            filters: Column -> value equality filters (all must match)
            order_by: Column to sort by
            descending: Sort direction
            columns: Restrict returned columns (all if None)

        Returns:
            Matching rows

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert(self, table: str, rows: list[Row]) -> list[Row]:
        """
        Insert one or more rows in a single write.

        Returns:
            The stored rows, with server-assigned `id`, `created_at`
            and `updated_at`, in insertion order

        Raises:
            StorageError: If the write fails (no row is inserted)
        """
        pass

    @abstractmethod
    async def update(
        self,
        table: str,
        values: Row,
        filters: dict[str, Any],
    ) -> Row:
        """
        Update the single row matching the filters.

        Returns:
            The row as stored after the update

        Raises:
            NotFoundError: If no row matches
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        """
        Delete rows matching the filters.

        Returns:
            Number of rows deleted
        """
        pass


class ResidentProviderInterface(ABC):
    """Supplies residents and their configured monthly fee amounts."""

    @abstractmethod
    async def list_resident_fees(self, identity: LedgerIdentity) -> list[ResidentFee]:
        """
        Residents visible to the identity, with their fee amounts.

        Raises:
            StorageError: If the residents cannot be read
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass


class StorageError(Exception):
    """
    Base exception for storage operations.

    Carries the backend's human-readable message and, when the backend
    provides one, a machine code.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass


class AuthenticationError(StorageError):
    """The backend rejected the session's credentials."""
    pass
