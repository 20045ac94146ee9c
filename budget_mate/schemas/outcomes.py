# schemas/outcomes.py

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import List, Optional

from .allocation import AllocationResult, GapResult, OpeningBalanceResult


class AutoAllocationOutcome(BaseModel):
    """Result of materializing one income transaction into a plan."""

    plan_id: str = Field(..., description="The plan backing the transaction (new or pre-existing).")
    created: bool = Field(..., description="False when an existing plan was returned instead of creating one.")
    allocation: Optional[AllocationResult] = Field(None, description="The waterfall result, present when a plan was created.")
    linked: bool = Field(True, description="Whether the parent transaction was updated to point at the plan.")


class BatchItemResult(BaseModel):
    transaction_id: str
    plan_id: Optional[str] = None
    created: bool = False
    error: Optional[str] = None


class BatchAllocationResult(BaseModel):
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    results: List[BatchItemResult] = Field(default_factory=list)


class EnvelopeGapReport(BaseModel):
    envelope_id: str
    name: str
    ideal_per_cycle: Decimal
    gap: GapResult


class EnvelopeOpeningBalanceReport(BaseModel):
    envelope_id: str
    name: str
    target_amount: Decimal
    ideal_per_cycle: Decimal
    opening_balance: OpeningBalanceResult
