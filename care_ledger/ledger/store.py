"""
Ledger Store

In-memory cache of the three ledger collections for one authenticated
session, writing through to the data store.

DESIGN DECISION: The store is an explicit object, created per session
and passed to whatever needs it. There is no process-wide instance.

The cache is only touched after the data store answered:
- add: the returned entity is prepended to its collection
- update: the returned entity replaces the cached one
- delete: the entity is dropped from its collection
A failed write leaves the cache exactly as it was and re-raises.

Update responses can arrive out of order. Before a response overwrites
the cache, its `updated_at` is compared with the cached one; an older
response is discarded (and audited) instead of clobbering newer data.

Reads never raise. `refresh()` records failures in `connection_error`
so the UI can show a banner, and keeps the previous cache for any
collection that failed to load.
"""

import asyncio
from datetime import date
from typing import Any, Callable, Optional, Union
from uuid import UUID

from care_ledger.audit import AuditLogger, create_correlation_id
from care_ledger.billing import GenerationPreview, MonthlyFeeGenerator
from care_ledger.config import LedgerSettings, get_settings
from care_ledger.metrics import calculate_metrics
from care_ledger.models.errors import LedgerError
from care_ledger.models.ledger import (
    AccountPayable,
    AccountPayableDraft,
    AccountPayablePatch,
    AccountReceivable,
    AccountReceivableDraft,
    AccountReceivablePatch,
    FeeStatus,
    FinancialMetrics,
    LedgerIdentity,
    LedgerPatch,
    LedgerRecord,
    MonthlyFee,
    MonthlyFeeDraft,
    MonthlyFeePatch,
    PayableStatus,
    PaymentMethod,
    ReceivableStatus,
    ValidationResult,
)
from care_ledger.services.storage import (
    AuthenticationError,
    ConnectionError as StorageConnectionError,
    DataGatewayInterface,
    NotFoundError,
    ResidentProviderInterface,
)
from care_ledger.validation import LedgerValidator


Listener = Callable[["LedgerStore"], None]

NETWORK_ERROR_MARKERS = ("Failed to fetch", "NetworkError", "fetch")

CONNECTION_ERROR_MESSAGE = (
    "Could not connect to the server. Check your internet connection and try again."
)
AUTH_ERROR_MESSAGE = "Your session has expired. Please sign in again."
GENERIC_ERROR_MESSAGE = "Error loading financial data: {error}"


def classify_error(error: Exception, auth_error_code: str = "PGRST301") -> str:
    """
    User-facing message for a failed read.

    Network failures and expired sessions get their own messages; anything
    else is reported with the underlying error text.
    """
    message = getattr(error, "message", None) or str(error)
    code = getattr(error, "code", None)

    if isinstance(error, StorageConnectionError) or any(
        marker in message for marker in NETWORK_ERROR_MARKERS
    ):
        return CONNECTION_ERROR_MESSAGE

    if isinstance(error, AuthenticationError) or code == auth_error_code:
        return AUTH_ERROR_MESSAGE

    return GENERIC_ERROR_MESSAGE.format(error=message)


class LedgerStore:
    """
    CRUD facade over monthly fees, payables and receivables.

    Every read and write is scoped to the session identity (owner and,
    when present, tenant organization).
    """

    def __init__(
        self,
        gateway: DataGatewayInterface,
        identity: LedgerIdentity,
        resident_provider: Optional[ResidentProviderInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Optional[Callable[[], date]] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        """
        Initialize the store for one session.

        Args:
            gateway: Data store the cache mirrors
            identity: Authenticated user (and organization)
            resident_provider: Needed only for monthly fee generation
            audit_logger: Audit trail; logs locally only if None
            settings: Ledger business settings
            clock: Returns "today"; used for metrics and default payment dates
            validator: Write validation rules
        """
        self._gateway = gateway
        self._identity = identity
        self._resident_provider = resident_provider
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().ledger
        self._clock = clock or date.today
        self._validator = validator or LedgerValidator()

        self._collections: dict[str, list[Any]] = {
            MonthlyFee.table_name: [],
            AccountPayable.table_name: [],
            AccountReceivable.table_name: [],
        }
        self._is_loading = False
        self._connection_error: Optional[str] = None
        self._metrics: Optional[FinancialMetrics] = None
        self._metrics_stale = True
        self._listeners: list[Listener] = []

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def identity(self) -> LedgerIdentity:
        return self._identity

    @property
    def monthly_fees(self) -> tuple[MonthlyFee, ...]:
        return tuple(self._collections[MonthlyFee.table_name])

    @property
    def accounts_payable(self) -> tuple[AccountPayable, ...]:
        return tuple(self._collections[AccountPayable.table_name])

    @property
    def accounts_receivable(self) -> tuple[AccountReceivable, ...]:
        return tuple(self._collections[AccountReceivable.table_name])

    def today(self) -> date:
        """The date metrics, default payment dates and overdue listings use."""
        return self._clock()

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def connection_error(self) -> Optional[str]:
        """User-facing message from the last failed load, cleared by refresh()."""
        return self._connection_error

    @property
    def metrics(self) -> Optional[FinancialMetrics]:
        """
        Dashboard snapshot of the cached collections.

        None while all three collections are empty. Recomputed from scratch
        after any collection change or when the date rolls over.
        """
        if not any(self._collections.values()):
            return None

        today = self.today()
        if (
            self._metrics_stale
            or self._metrics is None
            or self._metrics.reference_date != today
        ):
            self._metrics = calculate_metrics(
                self.monthly_fees,
                self.accounts_payable,
                self.accounts_receivable,
                today=today,
                settings=self._settings,
            )
            self._metrics_stale = False
        return self._metrics

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback run after every state change.

        Returns a function that unregisters it.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _changed(self) -> None:
        self._metrics_stale = True
        self._notify()

    def _find(self, table: str, entity_id: UUID) -> tuple[int, Optional[Any]]:
        for index, entity in enumerate(self._collections[table]):
            if entity.id == entity_id:
                return index, entity
        return -1, None

    def _scope(self, entity_id: UUID) -> dict[str, Any]:
        return {"id": str(entity_id), **self._identity.scope_filters()}

    # =========================================================================
    # GENERIC WRITES
    # =========================================================================

    async def _reject_if_invalid(
        self,
        operation: str,
        result: ValidationResult,
        entity_id: Optional[UUID] = None,
    ) -> None:
        if result.is_valid:
            return
        await self._audit.log_write_rejected(
            operation=operation,
            entity_type=result.entity_type,
            issues=[issue.model_dump() for issue in result.issues],
            entity_id=entity_id,
        )
        self._validator.ensure_valid(result)

    async def _add(self, entity_cls: type[LedgerRecord], draft: Any) -> Any:
        result = self._validator.validate_draft(draft, entity_cls.entity_type)
        await self._reject_if_invalid("add", result)

        row = {**draft.to_row(), **self._identity.owner_stamp()}
        try:
            stored = await self._gateway.insert(entity_cls.table_name, [row])
        except Exception as e:
            await self._audit.log_write_failed(
                operation="add",
                entity_type=entity_cls.entity_type,
                error_message=str(e),
                error_code=getattr(e, "code", None),
            )
            raise

        entity = entity_cls.from_row(stored[0])
        self._collections[entity_cls.table_name].insert(0, entity)
        self._changed()

        await self._audit.log_entity_added(
            entity_type=entity_cls.entity_type,
            entity_id=entity.id,
            amount=str(entity.amount),
            identity=self._identity,
        )
        return entity

    async def _update(
        self,
        entity_cls: type[LedgerRecord],
        entity_id: UUID,
        patch: LedgerPatch,
    ) -> Any:
        entity_id = UUID(str(entity_id))
        table = entity_cls.table_name
        _, current = self._find(table, entity_id)
        if current is None:
            raise NotFoundError(
                f"{entity_cls.entity_type} {entity_id} is not loaded; refresh first"
            )
        if patch.is_empty():
            return current

        result = self._validator.validate_update(current, patch)
        await self._reject_if_invalid("update", result, entity_id)

        try:
            row = await self._gateway.update(
                table,
                values=patch.to_values(),
                filters=self._scope(entity_id),
            )
        except Exception as e:
            await self._audit.log_write_failed(
                operation="update",
                entity_type=entity_cls.entity_type,
                error_message=str(e),
                error_code=getattr(e, "code", None),
                entity_id=entity_id,
            )
            raise

        updated = entity_cls.from_row(row)

        # The cache may have moved on while this write was in flight
        index, cached = self._find(table, entity_id)
        if cached is None:
            return updated

        if (
            cached.updated_at is not None
            and updated.updated_at is not None
            and cached.updated_at > updated.updated_at
        ):
            await self._audit.log_stale_response(
                entity_type=entity_cls.entity_type,
                entity_id=entity_id,
                cached_updated_at=cached.updated_at.isoformat(),
                response_updated_at=updated.updated_at.isoformat(),
            )
            return updated

        self._collections[table][index] = updated
        self._changed()

        await self._audit.log_entity_updated(
            entity_type=entity_cls.entity_type,
            entity_id=entity_id,
            changed_fields=sorted(patch.model_fields_set),
            identity=self._identity,
        )
        return updated

    async def _delete(self, entity_cls: type[LedgerRecord], entity_id: UUID) -> None:
        entity_id = UUID(str(entity_id))
        table = entity_cls.table_name
        try:
            await self._gateway.delete(table, filters=self._scope(entity_id))
        except Exception as e:
            await self._audit.log_write_failed(
                operation="delete",
                entity_type=entity_cls.entity_type,
                error_message=str(e),
                error_code=getattr(e, "code", None),
                entity_id=entity_id,
            )
            raise

        self._collections[table] = [
            entity for entity in self._collections[table] if entity.id != entity_id
        ]
        self._changed()

        await self._audit.log_entity_deleted(
            entity_type=entity_cls.entity_type,
            entity_id=entity_id,
            identity=self._identity,
        )

    # =========================================================================
    # MONTHLY FEES
    # =========================================================================

    async def add_monthly_fee(
        self,
        draft: Union[MonthlyFeeDraft, dict],
    ) -> MonthlyFee:
        if isinstance(draft, dict):
            draft = MonthlyFeeDraft.model_validate(draft)
        return await self._add(MonthlyFee, draft)

    async def update_monthly_fee(
        self,
        fee_id: UUID,
        patch: Union[MonthlyFeePatch, dict],
    ) -> MonthlyFee:
        if isinstance(patch, dict):
            patch = MonthlyFeePatch.model_validate(patch)
        return await self._update(MonthlyFee, fee_id, patch)

    async def delete_monthly_fee(self, fee_id: UUID) -> None:
        await self._delete(MonthlyFee, fee_id)

    async def mark_fee_paid(
        self,
        fee_id: UUID,
        paid_date: Optional[date] = None,
        payment_method: Optional[PaymentMethod] = None,
    ) -> MonthlyFee:
        """Record a fee as paid, on `paid_date` (default today)."""
        changes: dict[str, Any] = {
            "status": FeeStatus.PAID,
            "paid_date": paid_date or self.today(),
        }
        if payment_method is not None:
            changes["payment_method"] = payment_method
        return await self.update_monthly_fee(fee_id, MonthlyFeePatch(**changes))

    async def mark_fee_overdue(self, fee_id: UUID) -> MonthlyFee:
        """Explicitly mark a pending fee as overdue. Nothing does this automatically."""
        return await self.update_monthly_fee(
            fee_id, MonthlyFeePatch(status=FeeStatus.OVERDUE)
        )

    async def cancel_fee(self, fee_id: UUID) -> MonthlyFee:
        return await self.update_monthly_fee(
            fee_id, MonthlyFeePatch(status=FeeStatus.CANCELLED)
        )

    def _generator(self) -> MonthlyFeeGenerator:
        if self._resident_provider is None:
            raise LedgerError("Monthly fee generation needs a resident provider")
        return MonthlyFeeGenerator(
            gateway=self._gateway,
            resident_provider=self._resident_provider,
            identity=self._identity,
            settings=self._settings,
            audit_logger=self._audit,
        )

    async def preview_monthly_fees(self, month: str, year: int) -> GenerationPreview:
        return await self._generator().preview(month, year)

    async def generate_monthly_fees(self, month: str, year: int) -> list[MonthlyFee]:
        """
        Create one fee per resident for the period and cache the batch.

        Raises:
            FeesAlreadyGeneratedError: If the period already has fees
            NoResidentsError: If there are no residents
            LedgerValidationError: If month and year disagree
            StorageError: If the data store fails
        """
        fees = await self._generator().generate(
            month, year, correlation_id=create_correlation_id()
        )
        self._collections[MonthlyFee.table_name][0:0] = fees
        self._changed()
        return fees

    # =========================================================================
    # ACCOUNTS PAYABLE
    # =========================================================================

    async def add_account_payable(
        self,
        draft: Union[AccountPayableDraft, dict],
    ) -> AccountPayable:
        if isinstance(draft, dict):
            draft = AccountPayableDraft.model_validate(draft)
        return await self._add(AccountPayable, draft)

    async def update_account_payable(
        self,
        payable_id: UUID,
        patch: Union[AccountPayablePatch, dict],
    ) -> AccountPayable:
        if isinstance(patch, dict):
            patch = AccountPayablePatch.model_validate(patch)
        return await self._update(AccountPayable, payable_id, patch)

    async def delete_account_payable(self, payable_id: UUID) -> None:
        await self._delete(AccountPayable, payable_id)

    async def mark_payable_paid(
        self,
        payable_id: UUID,
        paid_date: Optional[date] = None,
        payment_method: Optional[PaymentMethod] = None,
    ) -> AccountPayable:
        changes: dict[str, Any] = {
            "status": PayableStatus.PAID,
            "paid_date": paid_date or self.today(),
        }
        if payment_method is not None:
            changes["payment_method"] = payment_method
        return await self.update_account_payable(
            payable_id, AccountPayablePatch(**changes)
        )

    # =========================================================================
    # ACCOUNTS RECEIVABLE
    # =========================================================================

    async def add_account_receivable(
        self,
        draft: Union[AccountReceivableDraft, dict],
    ) -> AccountReceivable:
        if isinstance(draft, dict):
            draft = AccountReceivableDraft.model_validate(draft)
        return await self._add(AccountReceivable, draft)

    async def update_account_receivable(
        self,
        receivable_id: UUID,
        patch: Union[AccountReceivablePatch, dict],
    ) -> AccountReceivable:
        if isinstance(patch, dict):
            patch = AccountReceivablePatch.model_validate(patch)
        return await self._update(AccountReceivable, receivable_id, patch)

    async def delete_account_receivable(self, receivable_id: UUID) -> None:
        await self._delete(AccountReceivable, receivable_id)

    async def mark_receivable_received(
        self,
        receivable_id: UUID,
        received_date: Optional[date] = None,
        payment_method: Optional[PaymentMethod] = None,
    ) -> AccountReceivable:
        changes: dict[str, Any] = {
            "status": ReceivableStatus.RECEIVED,
            "received_date": received_date or self.today(),
        }
        if payment_method is not None:
            changes["payment_method"] = payment_method
        return await self.update_account_receivable(
            receivable_id, AccountReceivablePatch(**changes)
        )

    # =========================================================================
    # LOADING
    # =========================================================================

    async def _load(self, entity_cls: type[LedgerRecord]) -> None:
        """Reload one collection. Failures are recorded, never raised."""
        try:
            rows = await self._gateway.select(
                entity_cls.table_name,
                filters=self._identity.scope_filters(),
                order_by="due_date",
                descending=True,
            )
            self._collections[entity_cls.table_name] = [
                entity_cls.from_row(row) for row in rows
            ]
        except Exception as e:
            self._connection_error = classify_error(
                e, auth_error_code=self._settings.auth_error_code
            )
            await self._audit.log_refresh_failed(
                operation=f"load {entity_cls.table_name}",
                error_message=str(e),
                error_code=getattr(e, "code", None),
            )

    async def refresh(self) -> None:
        """
        Reload all three collections concurrently.

        Each collection is replaced wholesale on success. A collection that
        fails to load keeps its previous contents and sets `connection_error`.
        """
        self._is_loading = True
        self._connection_error = None
        self._notify()

        try:
            await asyncio.gather(
                self._load(MonthlyFee),
                self._load(AccountPayable),
                self._load(AccountReceivable),
            )
        finally:
            self._is_loading = False
            self._changed()

        if self._connection_error is None:
            await self._audit.log_data_refreshed(
                counts={
                    table: len(entities)
                    for table, entities in self._collections.items()
                },
                identity=self._identity,
            )

    def clear(self) -> None:
        """Drop everything cached for the session (sign-out)."""
        for table in self._collections:
            self._collections[table] = []
        self._connection_error = None
        self._is_loading = False
        self._metrics = None
        self._changed()
