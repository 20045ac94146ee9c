# schemas/allocation.py

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Dict, List, Optional
from datetime import date

from ..db.enums import Frequency, EnvelopePriority, GapStatus, SurplusStatus, AllocationStrategy


class _Frozen(BaseModel):
    """Engine inputs and results are immutable snapshots."""

    class Config:
        frozen = True
        from_attributes = True


# --- Ideal Allocation (multi-income) ---

class IncomeAllocationShare(_Frozen):
    """The slice of one income source earmarked for a single envelope."""

    income_source_id: str = Field(..., description="The income source the share comes from.")
    allocation_amount: Decimal = Field(..., description="Amount taken from each occurrence of that income.")
    income_frequency: Frequency = Field(..., description="How often the income source pays out.")


# --- Waterfall ---

class WaterfallEnvelope(_Frozen):
    envelope_id: str
    name: str = ""
    priority: EnvelopePriority = EnvelopePriority.DISCRETIONARY
    regular_amount_needed: Decimal = Field(Decimal("0"), description="What this envelope normally receives per pay cycle.")
    is_cc_holding: bool = Field(False, description="Credit card holding envelope, funded first under credit_first.")
    is_tracking: bool = Field(False, description="Tracking-only envelope; watched, never funded by the waterfall.")


class EnvelopeAllocation(_Frozen):
    envelope_id: str
    name: str = ""
    amount: Decimal
    is_regular: bool = True
    priority: EnvelopePriority


class AllocationResult(_Frozen):
    """
    Output of one waterfall pass. Invariant: sum(allocations.amount) + surplus == income_amount,
    to the cent.
    """

    income_amount: Decimal
    allocations: List[EnvelopeAllocation] = Field(default_factory=list, description="Funded envelopes in funding order.")
    total_regular: Decimal = Decimal("0.00")
    surplus: Decimal = Decimal("0.00")
    surplus_status: SurplusStatus = SurplusStatus.EXACT
    by_priority: Dict[EnvelopePriority, Decimal] = Field(default_factory=dict)
    # Unmet regular need per envelope id (only envelopes left short)
    shortfalls: Dict[str, Decimal] = Field(default_factory=dict)


class StrategyRecommendation(_Frozen):
    strategy: AllocationStrategy
    reason: str
    suggested_hybrid_amount: Optional[Decimal] = Field(None, description="Share of the balance to put towards the card under hybrid.")


class AvailableFunds(_Frozen):
    available_for_envelopes: Decimal
    credit_card_allocation: Decimal


# --- Gap Analysis ---

class GapResult(_Frozen):
    expected_balance: Decimal
    actual_balance: Decimal
    gap: Decimal = Field(..., description="actual - expected. Positive is ahead of schedule.")
    pay_cycles_elapsed: int = Field(0, ge=0)
    status: GapStatus
    # False when no bill cycle start date was known; status is then a placeholder on_track
    has_schedule: bool = True


# --- Opening Balance ---

class OpeningBalanceResult(_Frozen):
    target_date: Optional[date] = None
    days_until_due: int = 0
    cycles_until_due: int = 0
    projected_accumulation: Decimal = Decimal("0.00")
    opening_balance_needed: Decimal = Decimal("0.00")
    is_fully_funded: bool = True
