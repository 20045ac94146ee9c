# schemas/requests.py
# Request bodies for the allocation endpoints. Amounts are deliberately unconstrained
# here: sign checks belong to the engine, which answers with a ValidationError.

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ..db.enums import AllocationStrategy, Frequency
from .allocation import IncomeAllocationShare, WaterfallEnvelope


class WaterfallRequest(BaseModel):
    income_amount: Decimal = Field(..., description="The income to distribute.")
    envelopes: List[WaterfallEnvelope] = Field(default_factory=list, description="Envelopes in funding order within each tier.")
    cc_first: bool = Field(False, description="Fund credit card holding envelopes before the priority tiers.")


class StrategyRequest(BaseModel):
    bank_balance: Decimal
    credit_card_debt: Decimal


class AvailableFundsRequest(StrategyRequest):
    strategy: AllocationStrategy
    hybrid_amount: Optional[Decimal] = Field(None, description="Amount for the card under hybrid.")


class IdealAllocationRequest(BaseModel):
    shares: List[IncomeAllocationShare] = Field(default_factory=list)
    household_cycle: Frequency = Field(Frequency.FORTNIGHTLY, description="The household's primary pay cycle.")


class IdealAllocationOut(BaseModel):
    envelope_id: Optional[str] = None
    ideal_per_cycle: Decimal


class GapRequest(BaseModel):
    current_balance: Decimal
    opening_balance: Decimal = Decimal("0.00")
    ideal_per_cycle: Decimal
    bill_cycle_start_date: Optional[date] = None
    pay_cycle: Frequency = Frequency.FORTNIGHTLY
    now: Optional[date] = Field(None, description="Defaults to today.")


class OpeningBalanceRequest(BaseModel):
    target_amount: Decimal
    due_date: Optional[date] = Field(None, description="Absolute due date. Takes precedence over due_day.")
    due_day: Optional[int] = Field(None, ge=1, le=31, description="Day of month the bill falls due.")
    per_cycle_allocation: Decimal
    pay_cycle: Frequency = Frequency.FORTNIGHTLY
    now: Optional[date] = Field(None, description="Defaults to today.")


class AutoAllocationRequest(BaseModel):
    transaction_id: str = Field(..., description="The income transaction to materialize into a plan.")


class BatchAutoAllocationRequest(BaseModel):
    transaction_ids: Optional[List[str]] = Field(
        None, description="Transactions to process. When omitted, every unallocated income credit is considered."
    )
