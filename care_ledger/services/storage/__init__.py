"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend and an in-memory store serves development
and tests; both follow the same interface so they are swappable.
"""

from care_ledger.services.storage.interface import (
    AuditStorageInterface,
    AuthenticationError,
    ConnectionError,
    DataGatewayInterface,
    NotFoundError,
    ResidentProviderInterface,
    Row,
    StorageError,
    column_value,
)
from care_ledger.services.storage.memory import InMemoryGateway
from care_ledger.services.storage.providers import (
    AUDIT_LOG_TABLE,
    RESIDENTS_TABLE,
    GatewayAuditStorage,
    GatewayResidentProvider,
)
from care_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsGateway,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DataGatewayInterface",
    "ResidentProviderInterface",
    "Row",
    "column_value",
    # Exceptions
    "AuthenticationError",
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "AUDIT_LOG_TABLE",
    "RESIDENTS_TABLE",
    "GatewayAuditStorage",
    "GatewayResidentProvider",
    "GoogleSheetsClient",
    "GoogleSheetsGateway",
    "InMemoryGateway",
]
