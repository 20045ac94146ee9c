# services/allocation_store.py

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, AsyncIterator, List, Optional, Protocol

from sqlalchemy import select, update, delete, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..db.enums import AllocationStrategy, Frequency, PlanStatus
from ..errors import DuplicatePlanError, PersistenceError
from ..models.allocation_plan import AllocationPlan, AllocationPlanItem
from ..models.envelope import Envelope
from ..models.income_source import IncomeSource
from ..models.profile import Profile
from ..models.transaction import Transaction
from ..schemas.records import (
    ChildTransactionDraft,
    EnvelopeSnapshot,
    IncomeStreamSnapshot,
    IncomeTransaction,
    PlanHeader,
    PlanItemDraft,
    PlanRecord,
)

logger = logging.getLogger(__name__)


class AllocationStore(Protocol):
    """
    Storage collaborator of the allocation engine. Every method is keyed by user
    and/or entity id; implementations raise PersistenceError on storage failure.
    """

    async def load_envelopes(self, user_id: str, envelope_type: str = "expense") -> List[EnvelopeSnapshot]: ...

    async def load_pay_cycle(self, user_id: str) -> Frequency: ...

    async def load_allocation_strategy(self, user_id: str) -> AllocationStrategy: ...

    async def load_income_streams(self, user_id: str) -> List[IncomeStreamSnapshot]: ...

    async def load_transaction(self, transaction_id: str, user_id: str) -> Optional[IncomeTransaction]: ...

    async def load_unallocated_income(self, user_id: str) -> List[IncomeTransaction]: ...

    async def find_existing_plan(self, transaction_id: str) -> Optional[str]: ...

    async def create_plan(self, header: PlanHeader) -> str: ...

    async def create_plan_items(self, plan_id: str, items: List[PlanItemDraft]) -> None: ...

    async def create_child_transactions(self, children: List[ChildTransactionDraft]) -> None: ...

    async def link_transaction_to_plan(self, transaction_id: str, plan_id: str) -> None: ...

    def atomic(self) -> AsyncContextManager[None]: ...

    async def get_plan(self, plan_id: str, user_id: str) -> Optional[PlanRecord]: ...

    async def approve_plan(self, plan_id: str, applied_at: datetime) -> None: ...

    async def reverse_plan(self, plan_id: str) -> None: ...


class SqlAlchemyAllocationStore:
    """
    AllocationStore over an AsyncSession (Supabase PostgreSQL in production).
    Writes are flushed, never committed: the request-scoped session owns the commit.
    """

    def __init__(self, db: AsyncSession, default_pay_cycle: Frequency = Frequency.FORTNIGHTLY):
        self.db = db
        self.default_pay_cycle = default_pay_cycle

    # ----------------------------------------------------------------------
    # READS
    # ----------------------------------------------------------------------

    async def load_envelopes(self, user_id: str, envelope_type: str = "expense") -> List[EnvelopeSnapshot]:
        stmt = select(Envelope).where(
            and_(
                Envelope.user_id == user_id,
                Envelope.envelope_type == envelope_type,
            )
        ).order_by(Envelope.sort_order, Envelope.created_at, Envelope.name)

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load envelopes for user {user_id}.") from exc
        return [EnvelopeSnapshot.model_validate(row) for row in result.scalars().all()]

    async def _load_profile(self, user_id: str) -> Optional[Profile]:
        try:
            result = await self.db.execute(select(Profile).where(Profile.id == user_id))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load profile for user {user_id}.") from exc
        return result.scalar_one_or_none()

    async def load_pay_cycle(self, user_id: str) -> Frequency:
        profile = await self._load_profile(user_id)
        if profile is None or profile.pay_cycle is None:
            return self.default_pay_cycle
        return profile.pay_cycle

    async def load_allocation_strategy(self, user_id: str) -> AllocationStrategy:
        profile = await self._load_profile(user_id)
        if profile is None or profile.allocation_strategy is None:
            return AllocationStrategy.ENVELOPES_ONLY
        return profile.allocation_strategy

    async def load_income_streams(self, user_id: str) -> List[IncomeStreamSnapshot]:
        stmt = select(IncomeSource).options(selectinload(IncomeSource.allocations)).where(
            and_(
                IncomeSource.user_id == user_id,
                IncomeSource.is_active == True,  # noqa: E712
            )
        ).order_by(IncomeSource.name)

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load income sources for user {user_id}.") from exc
        return [IncomeStreamSnapshot.model_validate(row) for row in result.scalars().all()]

    async def load_transaction(self, transaction_id: str, user_id: str) -> Optional[IncomeTransaction]:
        stmt = select(Transaction).where(
            and_(
                Transaction.id == transaction_id,
                Transaction.user_id == user_id,
            )
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load transaction {transaction_id}.") from exc

        row = result.scalar_one_or_none()
        return IncomeTransaction.model_validate(row) if row is not None else None

    async def load_unallocated_income(self, user_id: str) -> List[IncomeTransaction]:
        """Top-level credits not yet reconciled or linked to a plan, oldest first."""
        stmt = select(Transaction).where(
            and_(
                Transaction.user_id == user_id,
                Transaction.amount > 0,
                Transaction.reconciled == False,  # noqa: E712
                Transaction.allocation_plan_id.is_(None),
                Transaction.parent_transaction_id.is_(None),
            )
        ).order_by(Transaction.transaction_date, Transaction.created_at)

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load income transactions for user {user_id}.") from exc
        return [IncomeTransaction.model_validate(row) for row in result.scalars().all()]

    async def find_existing_plan(self, transaction_id: str) -> Optional[str]:
        stmt = select(AllocationPlan.id).where(AllocationPlan.source_transaction_id == transaction_id).limit(1)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to look up the plan for transaction {transaction_id}.") from exc
        return result.scalar_one_or_none()

    # ----------------------------------------------------------------------
    # PLAN WRITES
    # ----------------------------------------------------------------------

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Savepoint around a group of writes; any error inside rolls all of them back."""
        try:
            async with self.db.begin_nested():
                yield
        except SQLAlchemyError as exc:
            raise PersistenceError("Storage transaction failed and was rolled back.") from exc

    async def create_plan(self, header: PlanHeader) -> str:
        plan = AllocationPlan(id=str(uuid.uuid4()), **header.model_dump())

        try:
            async with self.db.begin_nested():
                self.db.add(plan)
                await self.db.flush()
        except IntegrityError as exc:
            # Lost the race on uq_allocation_plans_source_transaction, or a dangling FK;
            # the caller re-checks find_existing_plan to tell the two apart.
            raise DuplicatePlanError(header.source_transaction_id) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to create allocation plan.") from exc

        return plan.id

    async def create_plan_items(self, plan_id: str, items: List[PlanItemDraft]) -> None:
        rows = [AllocationPlanItem(plan_id=plan_id, **item.model_dump()) for item in items]
        try:
            self.db.add_all(rows)
            await self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to create allocation plan items.", plan_id=plan_id) from exc

    async def create_child_transactions(self, children: List[ChildTransactionDraft]) -> None:
        rows = [Transaction(**child.model_dump()) for child in children]
        try:
            self.db.add_all(rows)
            await self.db.flush()
        except SQLAlchemyError as exc:
            plan_id = children[0].allocation_plan_id if children else None
            raise PersistenceError("Failed to create allocation transactions.", plan_id=plan_id) from exc

    async def link_transaction_to_plan(self, transaction_id: str, plan_id: str) -> None:
        stmt = (
            update(Transaction)
            .where(Transaction.id == transaction_id)
            .values(allocation_plan_id=plan_id, is_auto_allocated=True)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to link transaction {transaction_id} to plan.", plan_id=plan_id) from exc

        if result.rowcount == 0:
            raise PersistenceError(f"Transaction {transaction_id} not found while linking plan.", plan_id=plan_id)

    # ----------------------------------------------------------------------
    # REVIEW WORKFLOW
    # ----------------------------------------------------------------------

    async def _get_plan_row(self, plan_id: str, user_id: Optional[str] = None) -> Optional[AllocationPlan]:
        conditions = [AllocationPlan.id == plan_id]
        if user_id is not None:
            conditions.append(AllocationPlan.user_id == user_id)

        stmt = (
            select(AllocationPlan)
            .options(selectinload(AllocationPlan.items))
            .where(and_(*conditions))
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load allocation plan {plan_id}.") from exc
        return result.scalar_one_or_none()

    async def get_plan(self, plan_id: str, user_id: str) -> Optional[PlanRecord]:
        plan = await self._get_plan_row(plan_id, user_id)
        return PlanRecord.model_validate(plan) if plan is not None else None

    async def approve_plan(self, plan_id: str, applied_at: datetime) -> None:
        """Reconciles the child transactions, credits each envelope and marks the plan approved."""
        plan = await self._get_plan_row(plan_id)
        if plan is None:
            raise PersistenceError(f"Allocation plan {plan_id} disappeared during approval.", plan_id=plan_id)

        try:
            await self.db.execute(
                update(Transaction)
                .where(
                    and_(
                        Transaction.allocation_plan_id == plan_id,
                        Transaction.parent_transaction_id == plan.source_transaction_id,
                    )
                )
                .values(reconciled=True)
                .execution_options(synchronize_session=False)
            )

            for item in plan.items:
                await self.db.execute(
                    update(Envelope)
                    .where(Envelope.id == item.envelope_id)
                    .values(current_amount=Envelope.current_amount + item.amount)
                    .execution_options(synchronize_session=False)
                )

            plan.status = PlanStatus.APPROVED
            plan.applied_at = applied_at
            await self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to approve allocation plan {plan_id}.", plan_id=plan_id) from exc

    async def reverse_plan(self, plan_id: str) -> None:
        """Drops the pending child transactions and marks the plan reversed."""
        plan = await self._get_plan_row(plan_id)
        if plan is None:
            raise PersistenceError(f"Allocation plan {plan_id} disappeared during reversal.", plan_id=plan_id)

        try:
            await self.db.execute(
                delete(Transaction)
                .where(
                    and_(
                        Transaction.allocation_plan_id == plan_id,
                        Transaction.parent_transaction_id == plan.source_transaction_id,
                        Transaction.reconciled == False,  # noqa: E712
                    )
                )
                .execution_options(synchronize_session=False)
            )

            plan.status = PlanStatus.REVERSED
            await self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to reverse allocation plan {plan_id}.", plan_id=plan_id) from exc

        logger.info("Allocation plan %s reversed.", plan_id)
