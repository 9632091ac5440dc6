"""
Audit Logger

DESIGN DECISION: Every write to the ledger is logged.
This provides:
1. Complete traceability of money movements
2. Debugging capability
3. Staff can see who changed what
4. Compliance readiness

The audit logger:
- Is async to not block the ledger flow
- Gracefully handles failures (a failed audit write never breaks a ledger write)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from care_ledger.models.audit import AuditEvent, AuditEventBuilder
from care_ledger.models.ledger import LedgerIdentity
from care_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and staff visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("care_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entity_added(
        self,
        entity_type: str,
        entity_id: UUID,
        amount: str,
        identity: LedgerIdentity,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.entity_added(
            entity_type=entity_type,
            entity_id=entity_id,
            amount=amount,
            user_id=identity.user_id,
            organization_id=identity.organization_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_entity_updated(
        self,
        entity_type: str,
        entity_id: UUID,
        changed_fields: list[str],
        identity: LedgerIdentity,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.entity_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            changed_fields=changed_fields,
            user_id=identity.user_id,
            organization_id=identity.organization_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_entity_deleted(
        self,
        entity_type: str,
        entity_id: UUID,
        identity: LedgerIdentity,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.entity_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=identity.user_id,
            organization_id=identity.organization_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_write_failed(
        self,
        operation: str,
        entity_type: str,
        error_message: str,
        error_code: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a write the data store refused."""
        event = AuditEventBuilder.write_failed(
            operation=operation,
            entity_type=entity_type,
            error_message=error_message,
            error_code=error_code,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_write_rejected(
        self,
        operation: str,
        entity_type: str,
        issues: list[dict],
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a write stopped by validation before reaching the store."""
        event = AuditEventBuilder.write_rejected(
            operation=operation,
            entity_type=entity_type,
            issues=issues,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_stale_response(
        self,
        entity_type: str,
        entity_id: UUID,
        cached_updated_at: str,
        response_updated_at: str,
    ) -> None:
        event = AuditEventBuilder.stale_response_discarded(
            entity_type=entity_type,
            entity_id=entity_id,
            cached_updated_at=cached_updated_at,
            response_updated_at=response_updated_at,
        )
        await self.log(event)

    async def log_fees_generated(
        self,
        month: str,
        fee_count: int,
        total_amount: str,
        identity: LedgerIdentity,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.fees_generated(
            month=month,
            fee_count=fee_count,
            total_amount=total_amount,
            user_id=identity.user_id,
            organization_id=identity.organization_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_fee_generation_rejected(
        self,
        month: str,
        reason: str,
        identity: LedgerIdentity,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.fee_generation_rejected(
            month=month,
            reason=reason,
            user_id=identity.user_id,
            organization_id=identity.organization_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_data_refreshed(
        self,
        counts: dict[str, int],
        identity: LedgerIdentity,
    ) -> None:
        event = AuditEventBuilder.data_refreshed(
            counts=counts,
            user_id=identity.user_id,
            organization_id=identity.organization_id,
        )
        await self.log(event)

    async def log_refresh_failed(
        self,
        operation: str,
        error_message: str,
        error_code: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.refresh_failed(
            operation=operation,
            error_message=error_message,
            error_code=error_code,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a fee generation run).
    Pass it through all subsequent operations.
    """
    return uuid4()
