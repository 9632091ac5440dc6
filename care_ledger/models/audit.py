"""
Audit Models for Care Ledger

Each ledger write, rejected write, fee generation run and cache refresh
produces an AuditEvent carrying the acting user and organization. Events
from one user action share a correlation id.

Audit rows are append-only.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger operation has its own event type.
    """
    # Entity writes
    ENTITY_ADDED = "entity_added"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    WRITE_FAILED = "write_failed"
    WRITE_REJECTED = "write_rejected"
    STALE_RESPONSE_DISCARDED = "stale_response_discarded"

    # Monthly fee generation
    FEES_GENERATED = "fees_generated"
    FEE_GENERATION_REJECTED = "fee_generation_rejected"

    # Cache refresh
    DATA_REFRESHED = "data_refreshed"
    REFRESH_FAILED = "refresh_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One entry of the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'monthly_fee', 'account_payable')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Who
    user_id: Optional[str] = None
    organization_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one fee generation run)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": self.user_id,
            "organization_id": self.organization_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_row(self) -> dict:
        """
        Convert to an `audit_log` row for the data store.

        Details are JSON-encoded so every backend can hold them in one column.
        """
        row = self.to_log_dict()
        row["details"] = json.dumps(self.details, default=str) if self.details else ""
        return row


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_added("monthly_fee", fee.id, ...)
        event = AuditEventBuilder.fees_generated("2024-06", 3, ...)
    """

    @staticmethod
    def entity_added(
        entity_type: str,
        entity_id: UUID,
        amount: str,
        user_id: str,
        organization_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_ADDED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            organization_id=organization_id,
            correlation_id=correlation_id,
            description=f"{entity_type} added: {amount}",
            details={"amount": amount},
        )

    @staticmethod
    def entity_updated(
        entity_type: str,
        entity_id: UUID,
        changed_fields: list[str],
        user_id: str,
        organization_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            organization_id=organization_id,
            correlation_id=correlation_id,
            description=f"{entity_type} updated: {', '.join(changed_fields)}",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def entity_deleted(
        entity_type: str,
        entity_id: UUID,
        user_id: str,
        organization_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            organization_id=organization_id,
            correlation_id=correlation_id,
            description=f"{entity_type} deleted",
        )

    @staticmethod
    def write_failed(
        operation: str,
        entity_type: str,
        error_message: str,
        error_code: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{operation} failed for {entity_type}",
            error_code=error_code,
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def write_rejected(
        operation: str,
        entity_type: str,
        issues: list[dict],
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WRITE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected with {len(issues)} issues",
            details={"operation": operation, "issues": issues},
        )

    @staticmethod
    def stale_response_discarded(
        entity_type: str,
        entity_id: UUID,
        cached_updated_at: str,
        response_updated_at: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESPONSE_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description="Out-of-order update response ignored; cache holds a newer version",
            details={
                "cached_updated_at": cached_updated_at,
                "response_updated_at": response_updated_at,
            },
        )

    @staticmethod
    def fees_generated(
        month: str,
        fee_count: int,
        total_amount: str,
        user_id: str,
        organization_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEES_GENERATED,
            entity_type="monthly_fee",
            user_id=user_id,
            organization_id=organization_id,
            correlation_id=correlation_id,
            description=f"Generated {fee_count} monthly fees for {month}",
            details={
                "month": month,
                "fee_count": fee_count,
                "total_amount": total_amount,
            },
        )

    @staticmethod
    def fee_generation_rejected(
        month: str,
        reason: str,
        user_id: str,
        organization_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEE_GENERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="monthly_fee",
            user_id=user_id,
            organization_id=organization_id,
            correlation_id=correlation_id,
            description=f"Monthly fee generation for {month} rejected",
            details={"month": month, "reason": reason},
        )

    @staticmethod
    def data_refreshed(
        counts: dict[str, int],
        user_id: str,
        organization_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_REFRESHED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            organization_id=organization_id,
            description="Ledger collections reloaded",
            details=counts,
        )

    @staticmethod
    def refresh_failed(
        operation: str,
        error_message: str,
        error_code: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Failed to load ledger data: {operation}",
            error_code=error_code,
            error_message=error_message,
            details={"operation": operation},
        )
