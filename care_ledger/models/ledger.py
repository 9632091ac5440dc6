"""
Core Data Models for Care Ledger

These models define the strict schemas for all ledger data flowing
between the Ledger Store and the data store. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Map one-to-one onto data-store rows
4. Support the audit trail

DESIGN DECISION: Each entity comes in three shapes:
- Draft: what a caller supplies to create a record (no id yet)
- Entity: what the data store returned (id and timestamps assigned)
- Patch: an explicit optional-field structure for partial updates.
  Only fields the caller actually set are written, so `None` clears a
  field while an omitted field is left untouched.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from care_ledger.models.periods import MONTH_KEY_PATTERN, parse_month_key


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class FeeStatus(str, Enum):
    """Lifecycle of a resident's monthly fee."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PayableStatus(str, Enum):
    """Lifecycle of a facility expense."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class ReceivableStatus(str, Enum):
    """Lifecycle of a non-fee income."""
    PENDING = "pending"
    RECEIVED = "received"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    PIX = "pix"
    BANK_TRANSFER = "bank_transfer"
    BOLETO = "boleto"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CHECK = "check"


class ExpenseCategory(str, Enum):
    """
    Expense categories for accounts payable.

    DESIGN DECISION: Explicit categories rather than free text keep
    reporting by category reliable.
    """
    PAYROLL = "payroll"
    MEDICATIONS = "medications"
    FOOD = "food"
    MAINTENANCE = "maintenance"
    UTILITIES = "utilities"
    TAXES = "taxes"
    INSURANCE = "insurance"
    SUPPLIES = "supplies"
    PROFESSIONAL_SERVICES = "professional_services"
    OTHERS = "others"


class RevenueSource(str, Enum):
    """Where a receivable comes from."""
    MONTHLY_FEE = "monthly_fee"
    HEALTH_INSURANCE = "health_insurance"
    DONATION = "donation"
    OTHER_SERVICES = "other_services"
    GOVERNMENT_SUBSIDY = "government_subsidy"
    OTHERS = "others"


class RecurringFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


# =============================================================================
# SESSION SCOPE
# =============================================================================

class LedgerIdentity(BaseModel):
    """
    The authenticated identity a Ledger Store works for.

    Every read and write is scoped by the owner and, when present,
    by the tenant organization.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    user_id: str = Field(
        ...,
        min_length=1,
        description="Authenticated user id (record owner)"
    )
    organization_id: Optional[str] = Field(
        default=None,
        description="Tenant organization id, if the user belongs to one"
    )

    def scope_filters(self) -> dict[str, str]:
        """Equality filters that restrict a query to this identity."""
        filters = {"user_id": self.user_id}
        if self.organization_id:
            filters["organization_id"] = self.organization_id
        return filters

    def owner_stamp(self) -> dict[str, Optional[str]]:
        """Owner columns stamped onto every inserted row."""
        return {
            "user_id": self.user_id,
            "organization_id": self.organization_id,
        }


# =============================================================================
# FIELD SETS
# =============================================================================

class MonthlyFeeFields(BaseModel):
    """Fields shared by a monthly fee draft and a stored monthly fee."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    resident_id: UUID = Field(
        ...,
        description="Resident this fee is charged to"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Fee amount"
    )
    due_date: date
    paid_date: Optional[date] = None
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    late_fee: Decimal = Field(default=Decimal("0"), ge=0)
    status: FeeStatus = FeeStatus.PENDING
    observations: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    month: str = Field(
        ...,
        pattern=MONTH_KEY_PATTERN,
        description="Billing period key (YYYY-MM)"
    )
    year: int = Field(..., ge=1900, le=9999)

    @model_validator(mode='after')
    def validate_period(self) -> 'MonthlyFeeFields':
        """The month key must belong to the stated year."""
        key_year, _ = parse_month_key(self.month)
        if key_year != self.year:
            raise ValueError(
                f"Month {self.month} does not belong to year {self.year}"
            )
        return self


class AccountPayableFields(BaseModel):
    """Fields shared by a payable draft and a stored payable."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    description: str = Field(..., min_length=1, max_length=500)
    category: ExpenseCategory
    supplier: str = Field(default="", max_length=200)
    amount: Decimal = Field(..., ge=0)
    due_date: date
    paid_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    cost_center: Optional[str] = None
    status: PayableStatus = PayableStatus.PENDING
    observations: Optional[str] = None
    attachments: list[str] = Field(default_factory=list)
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None

    @field_validator('attachments', mode='before')
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class AccountReceivableFields(BaseModel):
    """Fields shared by a receivable draft and a stored receivable."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    description: str = Field(..., min_length=1, max_length=500)
    source: RevenueSource
    client: str = Field(default="", max_length=200)
    amount: Decimal = Field(..., ge=0)
    due_date: date
    received_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    status: ReceivableStatus = ReceivableStatus.PENDING
    observations: Optional[str] = None


# =============================================================================
# STORED ENTITIES
# =============================================================================

class LedgerRecord(BaseModel):
    """
    Identity and bookkeeping columns assigned by the data store.

    CRITICAL: `id`, `created_at` and `updated_at` are never produced
    locally. A record only exists in the cache after the store returned it.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    table_name: ClassVar[str] = ""
    entity_type: ClassVar[str] = ""

    id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    organization_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]):
        """Build the entity from a data-store row."""
        return cls.model_validate(row)

    def to_row(self) -> dict[str, Any]:
        """Writable columns of this entity, JSON-safe."""
        return self.model_dump(
            mode="json",
            exclude={"id", "created_at", "updated_at", "organization_id"},
        )


class MonthlyFee(LedgerRecord, MonthlyFeeFields):
    """One resident's obligation for one calendar month."""

    table_name: ClassVar[str] = "monthly_fees"
    entity_type: ClassVar[str] = "monthly_fee"

    @property
    def total_due(self) -> Decimal:
        """Amount owed including late fee, net of discount."""
        return self.amount + self.late_fee - self.discount


class AccountPayable(LedgerRecord, AccountPayableFields):
    """A facility expense obligation."""

    table_name: ClassVar[str] = "accounts_payable"
    entity_type: ClassVar[str] = "account_payable"


class AccountReceivable(LedgerRecord, AccountReceivableFields):
    """Income that is not a resident monthly fee (insurance, donation, ...)."""

    table_name: ClassVar[str] = "accounts_receivable"
    entity_type: ClassVar[str] = "account_receivable"


# =============================================================================
# DRAFTS - entity without id, accepted by `add`
# =============================================================================

class MonthlyFeeDraft(MonthlyFeeFields):
    """A monthly fee about to be inserted."""

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class AccountPayableDraft(AccountPayableFields):
    """A payable about to be inserted."""

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class AccountReceivableDraft(AccountReceivableFields):
    """A receivable about to be inserted."""

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


# =============================================================================
# PATCHES - strongly-typed partial updates
# =============================================================================

class LedgerPatch(BaseModel):
    """
    Base for partial updates.

    Fields listed in `required_fields` may be omitted but never set to None,
    because the stored column cannot be empty.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    required_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode='after')
    def reject_clearing_required(self) -> 'LedgerPatch':
        for name in self.model_fields_set & self.required_fields:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self

    def to_values(self) -> dict[str, Any]:
        """Columns to write: only the fields the caller set."""
        return self.model_dump(mode="json", exclude_unset=True)

    def changes(self) -> dict[str, Any]:
        """Set fields as Python values, for merging onto a cached entity."""
        return self.model_dump(exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def apply_to(self, entity: LedgerRecord) -> LedgerRecord:
        """Entity as it would look after this patch is written."""
        return entity.model_copy(update=self.changes())


class MonthlyFeePatch(LedgerPatch):
    required_fields: ClassVar[frozenset[str]] = frozenset({
        "resident_id", "amount", "due_date", "discount", "late_fee",
        "status", "month", "year",
    })

    resident_id: Optional[UUID] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    discount: Optional[Decimal] = Field(default=None, ge=0)
    late_fee: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[FeeStatus] = None
    observations: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    month: Optional[str] = Field(default=None, pattern=MONTH_KEY_PATTERN)
    year: Optional[int] = Field(default=None, ge=1900, le=9999)


class AccountPayablePatch(LedgerPatch):
    required_fields: ClassVar[frozenset[str]] = frozenset({
        "description", "category", "supplier", "amount", "due_date",
        "status", "attachments", "is_recurring",
    })

    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    category: Optional[ExpenseCategory] = None
    supplier: Optional[str] = Field(default=None, max_length=200)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    cost_center: Optional[str] = None
    status: Optional[PayableStatus] = None
    observations: Optional[str] = None
    attachments: Optional[list[str]] = None
    is_recurring: Optional[bool] = None
    recurring_frequency: Optional[RecurringFrequency] = None


class AccountReceivablePatch(LedgerPatch):
    required_fields: ClassVar[frozenset[str]] = frozenset({
        "description", "source", "client", "amount", "due_date", "status",
    })

    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    source: Optional[RevenueSource] = None
    client: Optional[str] = Field(default=None, max_length=200)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    received_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    status: Optional[ReceivableStatus] = None
    observations: Optional[str] = None


# =============================================================================
# RESIDENT FEES (supplied by the Resident Provider)
# =============================================================================

class ResidentFee(BaseModel):
    """A resident and the monthly fee configured on their record."""

    resident_id: UUID
    monthly_fee_amount: Decimal = Field(default=Decimal("0"), ge=0)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> 'ResidentFee':
        return cls(
            resident_id=row["id"],
            monthly_fee_amount=row.get("monthly_fee_amount") or Decimal("0"),
        )


# =============================================================================
# DERIVED METRICS
# =============================================================================

class PeriodComparison(BaseModel):
    """A figure for the current month against the previous one."""

    current: Decimal = Decimal("0")
    previous: Decimal = Decimal("0")
    trend: float = Field(
        default=0.0,
        description="Percent change from previous to current (0 when previous is 0)"
    )


class OverdueAmount(BaseModel):
    receivables: Decimal = Decimal("0")
    payables: Decimal = Decimal("0")


class UpcomingDues(BaseModel):
    next_7_days: Decimal = Decimal("0")
    next_30_days: Decimal = Decimal("0")


class CashFlowProjection(BaseModel):
    """
    Reserved projection figures.

    NOTE: Always zero. No forecast is computed; the shape exists so the
    dashboard layout stays stable.
    """
    next_30_days: Decimal = Decimal("0")
    next_60_days: Decimal = Decimal("0")
    next_90_days: Decimal = Decimal("0")


class FinancialMetrics(BaseModel):
    """
    Dashboard snapshot derived from the three ledger collections.

    Never persisted and has no identity: it is recomputed from scratch
    whenever any collection changes.
    """
    model_config = ConfigDict(frozen=True)

    reference_date: date
    monthly_revenue: PeriodComparison
    monthly_expenses: PeriodComparison
    current_balance: Decimal
    overdue_amount: OverdueAmount
    upcoming_dues: UpcomingDues
    cash_flow_projection: CashFlowProjection = Field(default_factory=CashFlowProjection)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'invalid_transition', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one write before it is sent."""

    entity_type: str
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
