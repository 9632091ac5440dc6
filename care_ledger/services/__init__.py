"""Services package."""

from care_ledger.services.storage import (
    AuditStorageInterface,
    AuthenticationError,
    ConnectionError,
    DataGatewayInterface,
    GatewayAuditStorage,
    GatewayResidentProvider,
    GoogleSheetsClient,
    GoogleSheetsGateway,
    InMemoryGateway,
    NotFoundError,
    ResidentProviderInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "AuthenticationError",
    "ConnectionError",
    "DataGatewayInterface",
    "GatewayAuditStorage",
    "GatewayResidentProvider",
    "GoogleSheetsClient",
    "GoogleSheetsGateway",
    "InMemoryGateway",
    "NotFoundError",
    "ResidentProviderInterface",
    "StorageError",
]
