"""
Session wiring for Care Ledger

This module ties the components together for one signed-in user:
data gateway -> Ledger Store (with validation, metrics and fee
generation) -> audit trail.

DESIGN DECISION: A session is created explicitly when a user signs in
and discarded when they sign out. Whatever needs the ledger receives
the session (or its store) as a parameter; nothing is global.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Union
from uuid import UUID

import structlog

from care_ledger.audit import AuditLogger
from care_ledger.config import get_settings
from care_ledger.ledger import LedgerStore
from care_ledger.models.ledger import (
    AccountPayable,
    AccountReceivable,
    LedgerIdentity,
    MonthlyFee,
)
from care_ledger.presentation import LedgerTransaction, build_transactions
from care_ledger.services.storage import (
    DataGatewayInterface,
    GatewayAuditStorage,
    GatewayResidentProvider,
    GoogleSheetsClient,
    GoogleSheetsGateway,
    InMemoryGateway,
)


logger = structlog.get_logger("care_ledger.orchestrator")


class LedgerSession:
    """
    The ledger components of one authenticated session.

    Flow:
    1. start() loads the three collections and resident names
    2. The UI reads and writes through `store`
    3. end() clears the cache on sign-out
    """

    def __init__(
        self,
        store: LedgerStore,
        gateway: DataGatewayInterface,
        resident_provider: GatewayResidentProvider,
        audit_logger: AuditLogger,
    ):
        self.store = store
        self.gateway = gateway
        self.resident_provider = resident_provider
        self.audit_logger = audit_logger
        self._resident_names: dict[UUID, str] = {}

    @property
    def identity(self) -> LedgerIdentity:
        return self.store.identity

    @property
    def resident_names(self) -> dict[UUID, str]:
        return dict(self._resident_names)

    async def start(self) -> None:
        """Load the ledger and resident names. Never raises; see store.connection_error."""
        await self.store.refresh()
        await self.reload_resident_names()

    async def reload_resident_names(self) -> None:
        try:
            self._resident_names = await self.resident_provider.resident_names(
                self.identity
            )
        except Exception as e:
            # Fee rows fall back to a generic label
            logger.warning("resident_names_unavailable", error=str(e))

    def transactions(self) -> list[LedgerTransaction]:
        """All cached records as dashboard rows."""
        return build_transactions(
            self.store.monthly_fees,
            self.store.accounts_payable,
            self.store.accounts_receivable,
            resident_names=self._resident_names,
        )

    async def set_amount(
        self,
        row: LedgerTransaction,
        amount: Decimal,
    ) -> Union[MonthlyFee, AccountPayable, AccountReceivable]:
        """
        Change the amount of the record behind a dashboard row.

        Raises:
            LedgerValidationError: If the amount is not greater than zero
            StorageError: If the write fails
        """
        store = self.store
        patch = {"amount": amount}
        if row.source == MonthlyFee.entity_type:
            return await store.update_monthly_fee(row.id, patch)
        if row.source == AccountPayable.entity_type:
            return await store.update_account_payable(row.id, patch)
        return await store.update_account_receivable(row.id, patch)

    async def set_status(
        self,
        row: LedgerTransaction,
        status: str,
    ) -> Union[MonthlyFee, AccountPayable, AccountReceivable]:
        """
        Move the record behind a dashboard row to a display status.

        "paid" settles the record today (a receivable becomes "received").

        Raises:
            InvalidStatusTransitionError: If the record cannot move to the status
            StorageError: If the write fails
        """
        store = self.store
        settled = status in ("paid", "received")
        if row.source == MonthlyFee.entity_type:
            if settled:
                return await store.mark_fee_paid(row.id)
            return await store.update_monthly_fee(row.id, {"status": status})
        if row.source == AccountPayable.entity_type:
            if settled:
                return await store.mark_payable_paid(row.id)
            return await store.update_account_payable(row.id, {"status": status})
        if settled:
            return await store.mark_receivable_received(row.id)
        return await store.update_account_receivable(row.id, {"status": status})

    def end(self) -> None:
        """Sign-out: drop everything cached."""
        self.store.clear()
        self._resident_names = {}


def create_gateway(use_storage: bool = True) -> DataGatewayInterface:
    """
    Build the data gateway.

    Args:
        use_storage: Whether to use Google Sheets.
                    Set to False for local development without credentials.

    Falls back to the in-memory gateway when Sheets is not configured.
    """
    if use_storage:
        try:
            return GoogleSheetsGateway(GoogleSheetsClient())
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
    return InMemoryGateway()


def create_ledger_session(
    identity: LedgerIdentity,
    gateway: Optional[DataGatewayInterface] = None,
    use_storage: bool = True,
    persist_audit: bool = True,
    clock: Optional[Callable[[], date]] = None,
) -> LedgerSession:
    """
    Factory function to create the ledger components of a session.

    Args:
        identity: The signed-in user (and organization)
        gateway: Data gateway to use; built with create_gateway() if None
        use_storage: Passed to create_gateway() when no gateway is given
        persist_audit: Write audit events to the `audit_log` table
        clock: Returns "today" (for tests and back-dated dashboards)

    Returns:
        A LedgerSession whose store has not been loaded yet
    """
    gateway = gateway or create_gateway(use_storage)

    audit_storage = GatewayAuditStorage(gateway) if persist_audit else None
    audit_logger = AuditLogger(audit_storage)
    resident_provider = GatewayResidentProvider(gateway)

    store = LedgerStore(
        gateway=gateway,
        identity=identity,
        resident_provider=resident_provider,
        audit_logger=audit_logger,
        settings=get_settings().ledger,
        clock=clock,
    )

    return LedgerSession(
        store=store,
        gateway=gateway,
        resident_provider=resident_provider,
        audit_logger=audit_logger,
    )
