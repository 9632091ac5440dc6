"""
Monthly Fee Generation

Creates one monthly fee per resident for a billing period.

DESIGN DECISION: Generation is guarded by an idempotency gate.
If ANY fee already exists for the period, the whole run is refused:
no partial generation, no overwrite. Staff who need to add a single
missing fee do it by hand through the Ledger Store.

Flow:
1. Validate the period (before any I/O)
2. Gate: look for existing fees of the period
3. Fetch residents with their configured fee amounts
4. Build one pending fee per resident, due on the configured day
5. Insert the whole batch in a single write
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from care_ledger.audit import AuditLogger
from care_ledger.config import LedgerSettings, get_settings
from care_ledger.models.errors import (
    FeesAlreadyGeneratedError,
    LedgerValidationError,
    NoResidentsError,
)
from care_ledger.models.ledger import (
    FeeStatus,
    LedgerIdentity,
    MonthlyFee,
    MonthlyFeeDraft,
    ResidentFee,
    ValidationIssue,
)
from care_ledger.models.periods import parse_month_key
from care_ledger.services.storage import (
    DataGatewayInterface,
    ResidentProviderInterface,
)


class GenerationPreview(BaseModel):
    """What a generation run would create, shown before confirming."""

    month: str
    year: int
    due_date: date
    resident_count: int
    total_amount: Decimal
    already_generated: bool = Field(
        default=False,
        description="Fees of this period already exist; generating again would fail"
    )


def due_date_for(month: str, due_day: int) -> date:
    """Due date of a fee billed for the given "YYYY-MM" period."""
    year, month_number = parse_month_key(month)
    return date(year, month_number, due_day)


def validate_period(month: str, year: int) -> None:
    """
    Check a requested period before anything is read or written.

    Raises:
        LedgerValidationError: If month is not "YYYY-MM" or belongs to another year
    """
    try:
        key_year, _ = parse_month_key(month)
    except ValueError as e:
        raise LedgerValidationError([ValidationIssue(
            field="month",
            issue_type="invalid_value",
            message=str(e),
            severity="error",
        )])

    if key_year != year:
        raise LedgerValidationError([ValidationIssue(
            field="year",
            issue_type="inconsistent",
            message=f"Month {month} does not belong to year {year}",
            severity="error",
            suggested_fix=f"Use year {key_year}",
        )])


class MonthlyFeeGenerator:
    """
    Idempotent batch creation of monthly fees.

    Each fee uses the resident's own configured amount, never a
    facility-wide default.
    """

    def __init__(
        self,
        gateway: DataGatewayInterface,
        resident_provider: ResidentProviderInterface,
        identity: LedgerIdentity,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._gateway = gateway
        self._residents = resident_provider
        self._identity = identity
        self._settings = settings or get_settings().ledger
        self._audit = audit_logger or AuditLogger()

    async def is_generated(self, month: str, year: int) -> bool:
        """True if any fee of the period exists for this owner/tenant."""
        filters = {**self._identity.scope_filters(), "month": month, "year": year}
        existing = await self._gateway.select(
            MonthlyFee.table_name,
            filters=filters,
            columns=["id"],
        )
        return len(existing) > 0

    def build_fees(
        self,
        residents: list[ResidentFee],
        month: str,
        year: int,
    ) -> list[MonthlyFeeDraft]:
        """One pending fee per resident for the period."""
        due_date = due_date_for(month, self._settings.default_due_day)
        return [
            MonthlyFeeDraft(
                resident_id=resident.resident_id,
                amount=resident.monthly_fee_amount,
                due_date=due_date,
                discount=Decimal("0"),
                late_fee=Decimal("0"),
                status=FeeStatus.PENDING,
                month=month,
                year=year,
            )
            for resident in residents
        ]

    async def preview(self, month: str, year: int) -> GenerationPreview:
        """
        Figures for the confirmation form. Writes nothing.

        Raises:
            LedgerValidationError: If the period is invalid
            StorageError: If existing fees or residents cannot be read
        """
        validate_period(month, year)
        already_generated = await self.is_generated(month, year)
        residents = await self._residents.list_resident_fees(self._identity)
        return GenerationPreview(
            month=month,
            year=year,
            due_date=due_date_for(month, self._settings.default_due_day),
            resident_count=len(residents),
            total_amount=sum(
                (r.monthly_fee_amount for r in residents), Decimal("0")
            ),
            already_generated=already_generated,
        )

    async def generate(
        self,
        month: str,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> list[MonthlyFee]:
        """
        Generate the monthly fees of a period.

        Args:
            month: Period key, "YYYY-MM"
            year: Year of the period (must match the key)
            correlation_id: Ties the audit events of this run together

        Returns:
            The created fees, as returned by the data store

        Raises:
            LedgerValidationError: If the period is invalid
            FeesAlreadyGeneratedError: If the period already has fees
            NoResidentsError: If there is nobody to bill
            StorageError: If any read or the batch insert fails
        """
        validate_period(month, year)

        if await self.is_generated(month, year):
            error = FeesAlreadyGeneratedError(month)
            await self._audit.log_fee_generation_rejected(
                month=month,
                reason=error.message,
                identity=self._identity,
                correlation_id=correlation_id,
            )
            raise error

        residents = await self._residents.list_resident_fees(self._identity)
        if not residents:
            error = NoResidentsError()
            await self._audit.log_fee_generation_rejected(
                month=month,
                reason=error.message,
                identity=self._identity,
                correlation_id=correlation_id,
            )
            raise error

        drafts = self.build_fees(residents, month, year)
        owner = self._identity.owner_stamp()
        rows = [{**draft.to_row(), **owner} for draft in drafts]

        try:
            stored = await self._gateway.insert(MonthlyFee.table_name, rows)
        except Exception as e:
            await self._audit.log_write_failed(
                operation="generate_monthly_fees",
                entity_type=MonthlyFee.entity_type,
                error_message=str(e),
                error_code=getattr(e, "code", None),
                correlation_id=correlation_id,
            )
            raise

        fees = [MonthlyFee.from_row(row) for row in stored]

        await self._audit.log_fees_generated(
            month=month,
            fee_count=len(fees),
            total_amount=str(sum((f.amount for f in fees), Decimal("0"))),
            identity=self._identity,
            correlation_id=correlation_id,
        )

        return fees
