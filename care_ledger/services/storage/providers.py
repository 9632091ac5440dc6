"""
Gateway-backed collaborators.

Residents and audit events live in the same data store as the ledger,
so both are served through the DataGatewayInterface.
"""

import json
from uuid import UUID

from care_ledger.models.audit import AuditEvent
from care_ledger.models.ledger import LedgerIdentity, ResidentFee
from care_ledger.services.storage.interface import (
    AuditStorageInterface,
    DataGatewayInterface,
    ResidentProviderInterface,
)


RESIDENTS_TABLE = "residents"
AUDIT_LOG_TABLE = "audit_log"


class GatewayResidentProvider(ResidentProviderInterface):
    """Reads `residents` (id, monthly_fee_amount) scoped to the identity."""

    def __init__(self, gateway: DataGatewayInterface):
        self._gateway = gateway

    async def list_resident_fees(self, identity: LedgerIdentity) -> list[ResidentFee]:
        rows = await self._gateway.select(
            RESIDENTS_TABLE,
            filters=identity.scope_filters(),
            columns=["id", "monthly_fee_amount"],
        )
        return [ResidentFee.from_row(row) for row in rows]

    async def resident_names(self, identity: LedgerIdentity) -> dict[UUID, str]:
        """Resident id -> display name, for labelling fee rows."""
        rows = await self._gateway.select(
            RESIDENTS_TABLE,
            filters=identity.scope_filters(),
            columns=["id", "name"],
        )
        return {UUID(str(row["id"])): row.get("name") or "" for row in rows}


class GatewayAuditStorage(AuditStorageInterface):
    """
    Appends audit events to the `audit_log` table.

    Audit events are append-only.
    """

    def __init__(self, gateway: DataGatewayInterface):
        self._gateway = gateway

    async def append_event(self, event: AuditEvent) -> bool:
        row = event.to_row()
        # The store assigns its own row id; keep the event id as a column.
        await self._gateway.insert(AUDIT_LOG_TABLE, [row])
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        rows = await self._gateway.select(
            AUDIT_LOG_TABLE,
            filters={"entity_type": entity_type, "entity_id": str(entity_id)},
            order_by="timestamp",
        )
        events = []
        for row in rows:
            row = dict(row)
            row["details"] = json.loads(row["details"]) if row.get("details") else {}
            events.append(AuditEvent.model_validate(row))
        return events
