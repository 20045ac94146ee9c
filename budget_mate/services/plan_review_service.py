# services/plan_review_service.py

import logging
from datetime import datetime, timezone
from typing import Callable

from ..db.enums import PlanStatus
from ..errors import InvalidPlanTransitionError, NotFoundError
from ..schemas.records import PlanRecord
from .allocation_store import AllocationStore

logger = logging.getLogger(__name__)

# The only legal plan transitions; approved and reversed are terminal
ALLOWED_TRANSITIONS = {
    PlanStatus.PENDING: {PlanStatus.APPROVED, PlanStatus.REVERSED},
    PlanStatus.APPROVED: set(),
    PlanStatus.REVERSED: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlanReviewService:
    """
    Moves pending allocation plans to approved (money lands in the envelopes)
    or reversed (the pending child transactions are dropped).
    """

    def __init__(self, store: AllocationStore, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    async def get_plan(self, plan_id: str, user_id: str) -> PlanRecord:
        plan = await self.store.get_plan(plan_id, user_id)
        if plan is None:
            raise NotFoundError(f"Allocation plan {plan_id} not found.")
        return plan

    async def _transition(self, plan_id: str, user_id: str, target: PlanStatus) -> PlanRecord:
        plan = await self.get_plan(plan_id, user_id)
        if target not in ALLOWED_TRANSITIONS[plan.status]:
            raise InvalidPlanTransitionError(plan_id, plan.status.value, target.value)
        return plan

    async def approve_plan(self, plan_id: str, user_id: str) -> PlanRecord:
        await self._transition(plan_id, user_id, PlanStatus.APPROVED)

        async with self.store.atomic():
            await self.store.approve_plan(plan_id, self.clock())

        logger.info("Allocation plan %s approved for user %s.", plan_id, user_id)
        return await self.get_plan(plan_id, user_id)

    async def reverse_plan(self, plan_id: str, user_id: str) -> PlanRecord:
        await self._transition(plan_id, user_id, PlanStatus.REVERSED)

        async with self.store.atomic():
            await self.store.reverse_plan(plan_id)

        logger.info("Allocation plan %s reversed for user %s.", plan_id, user_id)
        return await self.get_plan(plan_id, user_id)
