import copy
import itertools
from contextlib import asynccontextmanager
from datetime import datetime

import pytest

from budget_mate.db.enums import AllocationStrategy, Frequency, PlanStatus
from budget_mate.errors import DuplicatePlanError, PersistenceError
from budget_mate.schemas.records import PlanItemRecord, PlanRecord


class InMemoryAllocationStore:
    """
    AllocationStore kept in plain dicts. atomic() snapshots the write state and
    restores it when the block raises, like a savepoint would.
    """

    def __init__(self):
        self.envelopes = {}        # user id -> [EnvelopeSnapshot]
        self.pay_cycles = {}       # user id -> Frequency
        self.strategies = {}       # user id -> AllocationStrategy
        self.income_streams = {}   # user id -> [IncomeStreamSnapshot]
        self.transactions = {}     # transaction id -> IncomeTransaction

        self.plans = {}            # plan id -> dict of header fields
        self.plan_items = {}       # plan id -> [PlanItemDraft]
        self.children = []         # [ChildTransactionDraft]
        self.links = {}            # transaction id -> plan id
        self.envelope_credits = {} # envelope id -> Decimal

        # Failure injection
        self.fail_on = set()
        self.fail_for_transactions = set()
        self.missed_lookups = 0

        self.calls = []
        self._ids = itertools.count(1)

    def _check(self, operation):
        self.calls.append(operation)
        if operation in self.fail_on:
            raise PersistenceError(f"{operation} failed")

    # --- reads ---

    async def load_envelopes(self, user_id, envelope_type="expense"):
        self._check("load_envelopes")
        return list(self.envelopes.get(user_id, []))

    async def load_pay_cycle(self, user_id):
        self._check("load_pay_cycle")
        return self.pay_cycles.get(user_id, Frequency.FORTNIGHTLY)

    async def load_allocation_strategy(self, user_id):
        self._check("load_allocation_strategy")
        return self.strategies.get(user_id, AllocationStrategy.ENVELOPES_ONLY)

    async def load_income_streams(self, user_id):
        self._check("load_income_streams")
        return list(self.income_streams.get(user_id, []))

    async def load_transaction(self, transaction_id, user_id):
        self._check("load_transaction")
        return self.transactions.get(transaction_id)

    async def load_unallocated_income(self, user_id):
        self._check("load_unallocated_income")
        return [
            tx for tx in self.transactions.values()
            if tx.amount > 0 and not tx.reconciled and tx.id not in self.links
        ]

    async def find_existing_plan(self, transaction_id):
        self._check("find_existing_plan")
        if self.missed_lookups > 0:
            self.missed_lookups -= 1
            return None
        for plan_id, plan in self.plans.items():
            if plan["source_transaction_id"] == transaction_id:
                return plan_id
        return None

    # --- writes ---

    @asynccontextmanager
    async def atomic(self):
        snapshot = copy.deepcopy((self.plans, self.plan_items, self.children, self.envelope_credits))
        try:
            yield
        except Exception:
            self.plans, self.plan_items, self.children, self.envelope_credits = snapshot
            raise

    async def create_plan(self, header):
        self._check("create_plan")
        if header.source_transaction_id in self.fail_for_transactions:
            raise PersistenceError(f"create_plan failed for {header.source_transaction_id}")
        if any(p["source_transaction_id"] == header.source_transaction_id for p in self.plans.values()):
            raise DuplicatePlanError(header.source_transaction_id)

        plan_id = f"plan-{next(self._ids)}"
        self.plans[plan_id] = dict(
            header.model_dump(), id=plan_id, created_at=datetime(2025, 1, 1), applied_at=None
        )
        return plan_id

    async def create_plan_items(self, plan_id, items):
        self._check("create_plan_items")
        self.plan_items.setdefault(plan_id, []).extend(items)

    async def create_child_transactions(self, children):
        self._check("create_child_transactions")
        self.children.extend(children)

    async def link_transaction_to_plan(self, transaction_id, plan_id):
        self._check("link_transaction_to_plan")
        self.links[transaction_id] = plan_id

    # --- review ---

    async def get_plan(self, plan_id, user_id):
        self._check("get_plan")
        plan = self.plans.get(plan_id)
        if plan is None or plan["user_id"] != user_id:
            return None
        items = [PlanItemRecord(**item.model_dump()) for item in self.plan_items.get(plan_id, [])]
        return PlanRecord(**plan, items=items)

    async def approve_plan(self, plan_id, applied_at):
        self._check("approve_plan")
        self.children = [
            child.model_copy(update={"reconciled": True}) if child.allocation_plan_id == plan_id else child
            for child in self.children
        ]
        for item in self.plan_items.get(plan_id, []):
            self.envelope_credits[item.envelope_id] = self.envelope_credits.get(item.envelope_id, 0) + item.amount
        self.plans[plan_id]["status"] = PlanStatus.APPROVED
        self.plans[plan_id]["applied_at"] = applied_at

    async def reverse_plan(self, plan_id):
        self._check("reverse_plan")
        self.children = [
            child for child in self.children
            if not (child.allocation_plan_id == plan_id and not child.reconciled)
        ]
        self.plans[plan_id]["status"] = PlanStatus.REVERSED


@pytest.fixture
def store():
    return InMemoryAllocationStore()
