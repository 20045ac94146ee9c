# services/allocation_plan_service.py

import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from .. import config
from ..db.enums import AllocationStrategy, Frequency, PlanStatus
from ..errors import BudgetMateError, DuplicatePlanError, NoEnvelopesError, NotFoundError, PersistenceError
from ..schemas.allocation import AllocationResult, WaterfallEnvelope
from ..schemas.outcomes import AutoAllocationOutcome, BatchAllocationResult, BatchItemResult
from ..schemas.records import (
    ChildTransactionDraft,
    EnvelopeSnapshot,
    IncomeTransaction,
    PlanHeader,
    PlanItemDraft,
)
from .allocation_logic.ideal_allocation import calculate_envelope_ideal
from .allocation_logic.waterfall import calculate_waterfall_allocation
from .allocation_logic.cycles import to_decimal
from .allocation_store import AllocationStore

logger = logging.getLogger(__name__)

CHILD_DESCRIPTION_PREFIX = "Auto-allocation: "


def should_auto_allocate(transaction: IncomeTransaction, min_amount=None) -> bool:
    """
    An income credit qualifies for auto-allocation when it is positive, at or above
    the threshold, not reconciled yet and not already linked to a plan.
    """
    threshold = to_decimal(
        config.AUTO_ALLOCATE_MIN_AMOUNT if min_amount is None else min_amount, "min_amount"
    )
    return (
        transaction.amount > 0
        and transaction.amount >= threshold
        and not transaction.reconciled
        and not transaction.allocation_plan_id
    )


def regular_amount_needed(envelope: EnvelopeSnapshot, pay_cycle: Frequency) -> Decimal:
    """
    What the envelope normally receives each pay. Falls back to spreading its
    bill target over the pay cycle when no per-pay amount is set.
    """
    if envelope.pay_cycle_amount > 0:
        return envelope.pay_cycle_amount
    return calculate_envelope_ideal(envelope.target_amount, envelope.frequency, pay_cycle)


class AllocationPlanService:
    """
    Turns an income transaction into a pending allocation plan: a plan header, one item
    and one unreconciled child transaction per funded envelope. Approval and reversal
    live in PlanReviewService.
    """

    def __init__(self, store: AllocationStore, min_auto_amount=None):
        self.store = store
        self.min_auto_amount = to_decimal(
            config.AUTO_ALLOCATE_MIN_AMOUNT if min_auto_amount is None else min_auto_amount,
            "min_auto_amount",
        )

    async def _existing_plan_for(self, transaction: IncomeTransaction) -> Optional[str]:
        if transaction.allocation_plan_id:
            return transaction.allocation_plan_id
        return await self.store.find_existing_plan(transaction.id)

    async def _run_waterfall(self, transaction: IncomeTransaction, user_id: str) -> AllocationResult:
        envelopes = await self.store.load_envelopes(user_id, envelope_type="expense")
        if not envelopes:
            raise NoEnvelopesError(f"User {user_id} has no expense envelopes to allocate into.")

        pay_cycle = await self.store.load_pay_cycle(user_id)
        strategy = await self.store.load_allocation_strategy(user_id)

        waterfall_envelopes = [
            WaterfallEnvelope(
                envelope_id=envelope.id,
                name=envelope.name,
                priority=envelope.priority,
                regular_amount_needed=regular_amount_needed(envelope, pay_cycle),
                is_cc_holding=envelope.is_cc_holding,
            )
            for envelope in envelopes
        ]

        return calculate_waterfall_allocation(
            transaction.amount,
            waterfall_envelopes,
            cc_first=strategy is AllocationStrategy.CREDIT_FIRST,
        )

    async def _write_plan(self, transaction: IncomeTransaction, user_id: str, result: AllocationResult) -> str:
        header = PlanHeader(
            user_id=user_id,
            source_transaction_id=transaction.id,
            amount=result.income_amount,
            status=PlanStatus.PENDING,
            regular_total=result.total_regular,
            surplus_total=result.surplus,
            envelope_count=len(result.allocations),
        )

        plan_id: Optional[str] = None
        try:
            async with self.store.atomic():
                plan_id = await self.store.create_plan(header)

                items = [
                    PlanItemDraft(
                        envelope_id=allocation.envelope_id,
                        amount=allocation.amount,
                        is_regular=allocation.is_regular,
                        priority=allocation.priority,
                        position=position,
                    )
                    for position, allocation in enumerate(result.allocations)
                ]
                await self.store.create_plan_items(plan_id, items)

                children = [
                    ChildTransactionDraft(
                        user_id=user_id,
                        envelope_id=allocation.envelope_id,
                        amount=allocation.amount,
                        transaction_date=transaction.transaction_date,
                        description=f"{CHILD_DESCRIPTION_PREFIX}{transaction.description}",
                        parent_transaction_id=transaction.id,
                        allocation_plan_id=plan_id,
                    )
                    for allocation in result.allocations
                ]
                await self.store.create_child_transactions(children)
        except DuplicatePlanError:
            raise
        except PersistenceError as exc:
            # The savepoint took the header with it, so there is no plan to point at
            logger.error(
                "Plan writes for transaction %s were rolled back (discarded plan id %s): %s",
                transaction.id,
                plan_id,
                exc,
            )
            raise PersistenceError(str(exc), plan_id=None) from exc

        return plan_id

    async def create_auto_allocation(self, transaction: IncomeTransaction, user_id: str) -> AutoAllocationOutcome:
        """
        Materializes a pending plan for one income transaction.

        Running it twice for the same transaction returns the existing plan with
        created=False. The plan header, items and child transactions are written together;
        linking the parent transaction back to the plan is best-effort.

        Raises:
            NoEnvelopesError: the user has no expense envelopes.
            ValidationError: the transaction amount is negative.
            PersistenceError: the plan could not be written. Header, items and children were
                rolled back together, so plan_id is None.
        """
        existing_plan_id = await self._existing_plan_for(transaction)
        if existing_plan_id:
            logger.info(
                "Transaction %s already backs plan %s; skipping auto-allocation.",
                transaction.id,
                existing_plan_id,
            )
            return AutoAllocationOutcome(plan_id=existing_plan_id, created=False)

        result = await self._run_waterfall(transaction, user_id)

        try:
            plan_id = await self._write_plan(transaction, user_id, result)
        except DuplicatePlanError as exc:
            # Another caller materialized the same transaction first
            winner = exc.existing_plan_id or await self.store.find_existing_plan(transaction.id)
            if not winner:
                raise PersistenceError(
                    f"Failed to create allocation plan for transaction {transaction.id}."
                ) from exc
            logger.info("Transaction %s was allocated concurrently into plan %s.", transaction.id, winner)
            return AutoAllocationOutcome(plan_id=winner, created=False)

        logger.info(
            "Created allocation plan %s for transaction %s: %s allocated to %d envelope(s), %s surplus.",
            plan_id,
            transaction.id,
            result.total_regular,
            len(result.allocations),
            result.surplus,
        )

        linked = True
        try:
            await self.store.link_transaction_to_plan(transaction.id, plan_id)
        except PersistenceError:
            linked = False
            logger.warning(
                "Could not link transaction %s to plan %s; the plan stands.",
                transaction.id,
                plan_id,
                exc_info=True,
            )

        return AutoAllocationOutcome(plan_id=plan_id, created=True, allocation=result, linked=linked)

    async def _allocate_batch_item(self, transaction: IncomeTransaction, user_id: str) -> Optional[BatchItemResult]:
        """None when the transaction does not qualify; otherwise a success or failure entry."""
        if not should_auto_allocate(transaction, self.min_auto_amount):
            return None

        try:
            outcome = await self.create_auto_allocation(transaction, user_id)
        except BudgetMateError as exc:
            logger.warning("Auto-allocation failed for transaction %s: %s", transaction.id, exc)
            return BatchItemResult(
                transaction_id=transaction.id,
                plan_id=getattr(exc, "plan_id", None),
                error=str(exc),
            )

        return BatchItemResult(transaction_id=transaction.id, plan_id=outcome.plan_id, created=outcome.created)

    @staticmethod
    def _summarize(user_id: str, entries: List[Optional[BatchItemResult]]) -> BatchAllocationResult:
        results = [entry for entry in entries if entry is not None]
        failed = sum(1 for entry in results if entry.error)
        batch = BatchAllocationResult(
            successful=len(results) - failed,
            failed=failed,
            skipped=len(entries) - len(results),
            results=results,
        )
        logger.info(
            "Batch auto-allocation for user %s: %d successful, %d failed, %d skipped.",
            user_id,
            batch.successful,
            batch.failed,
            batch.skipped,
        )
        return batch

    async def batch_auto_allocate(
        self,
        transactions: Iterable[IncomeTransaction],
        user_id: str,
    ) -> BatchAllocationResult:
        """Runs create_auto_allocation for every qualifying transaction; one failure never stops the rest."""
        entries = [await self._allocate_batch_item(transaction, user_id) for transaction in transactions]
        return self._summarize(user_id, entries)

    async def batch_auto_allocate_ids(self, transaction_ids: Iterable[str], user_id: str) -> BatchAllocationResult:
        """
        Same as batch_auto_allocate, for transaction ids. An id that cannot be loaded
        is reported as a failed entry and the remaining ids are still processed.
        """
        entries: List[Optional[BatchItemResult]] = []
        for transaction_id in transaction_ids:
            try:
                transaction = await self.store.load_transaction(transaction_id, user_id)
                if transaction is None:
                    raise NotFoundError(f"Transaction {transaction_id} not found.")
            except BudgetMateError as exc:
                logger.warning("Auto-allocation failed for transaction %s: %s", transaction_id, exc)
                entries.append(BatchItemResult(transaction_id=transaction_id, error=str(exc)))
                continue

            entries.append(await self._allocate_batch_item(transaction, user_id))

        return self._summarize(user_id, entries)
