from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from budget_mate.db.enums import EnvelopePriority, PlanStatus
from budget_mate.errors import InvalidPlanTransitionError, NotFoundError, ValidationError
from budget_mate.schemas.records import EnvelopeSnapshot, IncomeTransaction
from budget_mate.services.allocation_plan_service import AllocationPlanService
from budget_mate.services.plan_review_service import PlanReviewService

USER = "user-1"
APPROVED_AT = datetime(2025, 3, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def review(store):
    return PlanReviewService(store, clock=lambda: APPROVED_AT)


async def make_pending_plan(store):
    store.envelopes[USER] = [
        EnvelopeSnapshot(id="rent", priority=EnvelopePriority.ESSENTIAL, pay_cycle_amount=Decimal("1200")),
        EnvelopeSnapshot(id="car", priority=EnvelopePriority.IMPORTANT, pay_cycle_amount=Decimal("900")),
    ]
    income = IncomeTransaction(id="tx-1", amount=Decimal("2000"), transaction_date=date(2025, 3, 14))
    outcome = await AllocationPlanService(store).create_auto_allocation(income, USER)
    return outcome.plan_id


@pytest.mark.asyncio
async def test_get_plan_returns_items(store, review):
    plan_id = await make_pending_plan(store)

    plan = await review.get_plan(plan_id, USER)

    assert plan.status is PlanStatus.PENDING
    assert [(i.envelope_id, i.amount) for i in plan.items] == [
        ("rent", Decimal("1200.00")),
        ("car", Decimal("800.00")),
    ]


@pytest.mark.asyncio
async def test_approve_credits_envelopes_and_reconciles(store, review):
    plan_id = await make_pending_plan(store)

    plan = await review.approve_plan(plan_id, USER)

    assert plan.status is PlanStatus.APPROVED
    assert plan.applied_at == APPROVED_AT
    assert store.envelope_credits == {"rent": Decimal("1200.00"), "car": Decimal("800.00")}
    assert all(child.reconciled for child in store.children)


@pytest.mark.asyncio
async def test_reverse_drops_pending_children(store, review):
    plan_id = await make_pending_plan(store)

    plan = await review.reverse_plan(plan_id, USER)

    assert plan.status is PlanStatus.REVERSED
    assert store.children == []
    assert store.envelope_credits == {}


@pytest.mark.asyncio
async def test_terminal_states_cannot_move(store, review):
    plan_id = await make_pending_plan(store)
    await review.approve_plan(plan_id, USER)

    with pytest.raises(InvalidPlanTransitionError) as excinfo:
        await review.reverse_plan(plan_id, USER)
    assert excinfo.value.current_status == "approved"
    assert isinstance(excinfo.value, ValidationError)

    with pytest.raises(InvalidPlanTransitionError):
        await review.approve_plan(plan_id, USER)


@pytest.mark.asyncio
async def test_reversed_plan_cannot_be_approved(store, review):
    plan_id = await make_pending_plan(store)
    await review.reverse_plan(plan_id, USER)

    with pytest.raises(InvalidPlanTransitionError):
        await review.approve_plan(plan_id, USER)
    assert store.envelope_credits == {}


@pytest.mark.asyncio
async def test_unknown_or_foreign_plan_is_not_found(store, review):
    plan_id = await make_pending_plan(store)

    with pytest.raises(NotFoundError):
        await review.get_plan("plan-404", USER)
    with pytest.raises(NotFoundError):
        await review.approve_plan(plan_id, "someone-else")
