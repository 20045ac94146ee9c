# api/v1/allocations.py (FastAPI Router)

from datetime import date
from fastapi import APIRouter, Depends, status

# Import dependencies
from ..dependencies import (
    get_allocation_plan_service,
    get_allocation_store,
    get_current_user_id,
    get_plan_review_service,
    to_http_exception,
)

# Import the engine and services
from ...errors import BudgetMateError, NotFoundError
from ...services.allocation_logic.gap_analysis import analyze_gap
from ...services.allocation_logic.ideal_allocation import calculate_ideal_allocation
from ...services.allocation_logic.opening_balance import calculate_opening_balance
from ...services.allocation_logic.waterfall import (
    calculate_available_funds,
    calculate_waterfall_allocation,
    recommend_strategy,
)
from ...services.allocation_plan_service import AllocationPlanService
from ...services.allocation_store import AllocationStore
from ...services.plan_review_service import PlanReviewService

# Import schemas for request/response bodies
from ...schemas.allocation import AllocationResult, AvailableFunds, GapResult, OpeningBalanceResult, StrategyRecommendation
from ...schemas.outcomes import AutoAllocationOutcome, BatchAllocationResult
from ...schemas.records import PlanRecord
from ...schemas.requests import (
    AutoAllocationRequest,
    AvailableFundsRequest,
    BatchAutoAllocationRequest,
    GapRequest,
    IdealAllocationOut,
    IdealAllocationRequest,
    OpeningBalanceRequest,
    StrategyRequest,
    WaterfallRequest,
)

router = APIRouter(
    prefix="/allocations",
    tags=["Allocation Engine"],
)

# ----------------------------------------------------------------------
# CALCULATORS (stateless)
# ----------------------------------------------------------------------

@router.post(
    "/waterfall",
    response_model=AllocationResult,
    summary="Distributes one income amount across envelopes by priority tier."
)
async def run_waterfall(body: WaterfallRequest):
    try:
        return calculate_waterfall_allocation(body.income_amount, body.envelopes, cc_first=body.cc_first)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/strategy",
    response_model=StrategyRecommendation,
    summary="Suggests credit_first, hybrid or envelopes_only from the bank balance and credit card debt."
)
async def suggest_strategy(body: StrategyRequest):
    try:
        return recommend_strategy(body.bank_balance, body.credit_card_debt)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/available-funds",
    response_model=AvailableFunds,
    summary="Splits a bank balance between the credit card and the envelopes for a strategy."
)
async def split_available_funds(body: AvailableFundsRequest):
    try:
        return calculate_available_funds(
            body.bank_balance, body.credit_card_debt, body.strategy, body.hybrid_amount
        )
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/ideal",
    response_model=IdealAllocationOut,
    summary="Ideal per-household-cycle amount for one envelope funded by several income sources."
)
async def run_ideal_allocation(body: IdealAllocationRequest):
    try:
        ideal = calculate_ideal_allocation(body.shares, body.household_cycle)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc
    return IdealAllocationOut(ideal_per_cycle=ideal)


@router.post(
    "/gap",
    response_model=GapResult,
    summary="Compares an envelope balance with where its schedule says it should be."
)
async def run_gap_analysis(body: GapRequest):
    try:
        return analyze_gap(
            body.current_balance,
            body.opening_balance,
            body.ideal_per_cycle,
            body.bill_cycle_start_date,
            body.now or date.today(),
            body.pay_cycle,
        )
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/opening-balance",
    response_model=OpeningBalanceResult,
    summary="Balance an envelope must hold today to reach its target by the due date."
)
async def run_opening_balance(body: OpeningBalanceRequest):
    due = body.due_date or body.due_day
    try:
        return calculate_opening_balance(
            body.target_amount,
            due,
            body.per_cycle_allocation,
            body.pay_cycle,
            body.now or date.today(),
        )
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc

# ----------------------------------------------------------------------
# PLAN MATERIALIZATION
# ----------------------------------------------------------------------

@router.post(
    "/auto",
    response_model=AutoAllocationOutcome,
    summary="Creates (or returns the existing) pending allocation plan for an income transaction."
)
async def auto_allocate_transaction(
    body: AutoAllocationRequest,
    store: AllocationStore = Depends(get_allocation_store),
    service: AllocationPlanService = Depends(get_allocation_plan_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        transaction = await store.load_transaction(body.transaction_id, user_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {body.transaction_id} not found.")
        return await service.create_auto_allocation(transaction, user_id)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/auto/batch",
    response_model=BatchAllocationResult,
    summary="Auto-allocates every qualifying income transaction, isolating failures per transaction."
)
async def auto_allocate_batch(
    body: BatchAutoAllocationRequest,
    store: AllocationStore = Depends(get_allocation_store),
    service: AllocationPlanService = Depends(get_allocation_plan_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        if body.transaction_ids is not None:
            return await service.batch_auto_allocate_ids(body.transaction_ids, user_id)

        transactions = await store.load_unallocated_income(user_id)
        return await service.batch_auto_allocate(transactions, user_id)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc

# ----------------------------------------------------------------------
# PLAN REVIEW
# ----------------------------------------------------------------------

@router.get(
    "/plans/{plan_id}",
    response_model=PlanRecord,
    summary="Retrieves an allocation plan with its items."
)
async def get_plan(
    plan_id: str,
    service: PlanReviewService = Depends(get_plan_review_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        return await service.get_plan(plan_id, user_id)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/plans/{plan_id}/approve",
    response_model=PlanRecord,
    status_code=status.HTTP_200_OK,
    summary="Approves a pending plan: reconciles its transactions and credits the envelopes."
)
async def approve_plan(
    plan_id: str,
    service: PlanReviewService = Depends(get_plan_review_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        return await service.approve_plan(plan_id, user_id)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/plans/{plan_id}/reverse",
    response_model=PlanRecord,
    status_code=status.HTTP_200_OK,
    summary="Reverses a pending plan and drops its unreconciled transactions."
)
async def reverse_plan(
    plan_id: str,
    service: PlanReviewService = Depends(get_plan_review_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        return await service.reverse_plan(plan_id, user_id)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc
