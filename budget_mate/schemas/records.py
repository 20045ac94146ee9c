# schemas/records.py
# Snapshots exchanged with the storage collaborator. The ORM rows are converted
# into these (from_attributes) so the services never hold live session objects.

from pydantic import BaseModel, Field, condecimal
from decimal import Decimal
from typing import List, Optional
from datetime import date, datetime

from ..db.enums import Frequency, EnvelopePriority, PlanStatus

# Use condecimal for precise financial values
FinancialDecimal = condecimal(max_digits=12, decimal_places=2)


class _Snapshot(BaseModel):
    class Config:
        frozen = True
        from_attributes = True


class EnvelopeSnapshot(_Snapshot):
    id: str
    name: str = ""
    priority: EnvelopePriority = EnvelopePriority.DISCRETIONARY
    is_cc_holding: bool = False
    pay_cycle_amount: Decimal = Decimal("0.00")
    target_amount: Decimal = Decimal("0.00")
    frequency: Frequency = Frequency.MONTHLY
    due_date: Optional[date] = None
    due_day: Optional[int] = Field(None, ge=1, le=31)
    bill_cycle_start_date: Optional[date] = None
    current_amount: Decimal = Decimal("0.00")
    opening_balance: Decimal = Decimal("0.00")


class IncomeAllocationSnapshot(_Snapshot):
    envelope_id: str
    amount: Decimal = Decimal("0.00")


class IncomeStreamSnapshot(_Snapshot):
    id: str
    name: str = ""
    amount: Decimal = Field(Decimal("0.00"), ge=Decimal("0"), description="Per occurrence, not annualized.")
    frequency: Frequency
    allocations: List[IncomeAllocationSnapshot] = Field(default_factory=list)


class IncomeTransaction(_Snapshot):
    """A bank credit that may trigger an auto-allocation plan."""

    id: str
    amount: Decimal
    transaction_date: date
    description: str = ""
    reconciled: bool = False
    allocation_plan_id: Optional[str] = None


# --- Plan writes ---

class PlanHeader(_Snapshot):
    user_id: str
    source_transaction_id: str
    amount: FinancialDecimal
    status: PlanStatus = PlanStatus.PENDING
    regular_total: FinancialDecimal = Decimal("0.00")
    surplus_total: FinancialDecimal = Decimal("0.00")
    envelope_count: int = 0


class PlanItemDraft(_Snapshot):
    envelope_id: str
    amount: FinancialDecimal
    is_regular: bool = True
    priority: Optional[EnvelopePriority] = None
    position: int = 0


class ChildTransactionDraft(_Snapshot):
    """Unreconciled envelope credit mirroring one plan item, awaiting approval."""

    user_id: str
    envelope_id: str
    amount: FinancialDecimal
    transaction_date: date
    description: str
    parent_transaction_id: str
    allocation_plan_id: str
    transaction_type: str = "allocation"
    reconciled: bool = False


# --- Plan reads ---

class PlanItemRecord(_Snapshot):
    envelope_id: str
    amount: Decimal
    is_regular: bool = True
    priority: Optional[EnvelopePriority] = None
    notes: Optional[str] = None


class PlanRecord(_Snapshot):
    id: str
    user_id: str
    source_transaction_id: str
    amount: Decimal
    status: PlanStatus
    regular_total: Decimal = Decimal("0.00")
    surplus_total: Decimal = Decimal("0.00")
    envelope_count: int = 0
    created_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    items: List[PlanItemRecord] = Field(default_factory=list)
