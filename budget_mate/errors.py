# budget_mate/errors.py

from typing import Optional


class BudgetMateError(Exception):
    """Base class for every error raised by the allocation engine and its services."""


class ValidationError(BudgetMateError):
    """Caller contract violation (negative amounts, malformed frequency). Never retried."""


class InvalidPlanTransitionError(ValidationError):
    """A plan status change outside pending -> approved / pending -> reversed."""

    def __init__(self, plan_id: str, current_status: str, target_status: str):
        self.plan_id = plan_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Allocation plan {plan_id} cannot move from '{current_status}' to '{target_status}'."
        )


class NoEnvelopesError(BudgetMateError):
    """The user has no envelopes to allocate into."""


class NotFoundError(BudgetMateError):
    """A referenced record (plan, envelope, income source) does not exist for the user."""


class PersistenceError(BudgetMateError):
    """
    A storage collaborator failure. `plan_id` names a plan that exists in storage
    and is worth inspecting. Plan materialization writes its header, items and
    children in one savepoint, so when those writes fail nothing is left behind and
    `plan_id` is None.
    """

    def __init__(self, message: str, plan_id: Optional[str] = None):
        super().__init__(message)
        self.plan_id = plan_id


class DuplicatePlanError(PersistenceError):
    """The source transaction already backs a plan (uniqueness constraint hit)."""

    def __init__(self, transaction_id: str, existing_plan_id: Optional[str] = None):
        super().__init__(
            f"Transaction {transaction_id} already backs an allocation plan.",
            plan_id=existing_plan_id,
        )
        self.transaction_id = transaction_id
        self.existing_plan_id = existing_plan_id
