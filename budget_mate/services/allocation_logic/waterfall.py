from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Sequence, Tuple

from ...db.enums import AllocationStrategy, EnvelopePriority, SurplusStatus
from ...errors import ValidationError
from ...schemas.allocation import (
    AllocationResult,
    AvailableFunds,
    EnvelopeAllocation,
    StrategyRecommendation,
    WaterfallEnvelope,
)
from .cycles import quantize_money, to_decimal

# Tiers are funded strictly in this order; surplus is whatever survives the last tier.
TIER_ORDER: Tuple[EnvelopePriority, ...] = (
    EnvelopePriority.ESSENTIAL,
    EnvelopePriority.IMPORTANT,
    EnvelopePriority.DISCRETIONARY,
)

# Balance must cover the card debt by this factor before credit_first is recommended
CREDIT_FIRST_COVER_RATIO = Decimal("1.2")
# Below this cover the card is left alone; between the two the balance is split
HYBRID_COVER_RATIO = Decimal("0.5")
# Share of the balance suggested for the card under hybrid, in whole dollars
HYBRID_CARD_SHARE = Decimal("0.4")

ZERO = Decimal("0")


def _tier_of(envelope: WaterfallEnvelope) -> EnvelopePriority:
    priority = envelope.priority
    if priority is EnvelopePriority.ESSENTIAL:
        return EnvelopePriority.ESSENTIAL
    if priority is EnvelopePriority.IMPORTANT:
        return EnvelopePriority.IMPORTANT
    if priority is EnvelopePriority.DISCRETIONARY:
        return EnvelopePriority.DISCRETIONARY
    raise ValidationError(f"Envelope {envelope.envelope_id} has an unknown priority: {priority!r}")


def _funding_order(envelopes: Sequence[WaterfallEnvelope], cc_first: bool) -> List[WaterfallEnvelope]:
    """Credit card holding envelopes (when cc_first), then each tier in caller order."""
    ordered: List[WaterfallEnvelope] = []

    if cc_first:
        ordered.extend(env for env in envelopes if env.is_cc_holding)

    for tier in TIER_ORDER:
        ordered.extend(
            env for env in envelopes
            if _tier_of(env) is tier and not (cc_first and env.is_cc_holding)
        )
    return ordered


def _absorb_drift(amounts: List[Decimal], drift: Decimal) -> None:
    """Adds the whole drift to the largest amount; the first one seen wins ties."""
    largest_index = 0
    for index, amount in enumerate(amounts):
        if amount > amounts[largest_index]:
            largest_index = index
    amounts[largest_index] += drift


def calculate_waterfall_allocation(
    income_amount,
    envelopes: Sequence[WaterfallEnvelope],
    cc_first: bool = False,
) -> AllocationResult:
    """
    Distributes one income amount across envelopes by priority tier.

    1. With cc_first, credit card holding envelopes are funded first.
    2. Essential, then important, then discretionary envelopes, each in the order given,
       receive min(remaining, regular_amount_needed).
    3. Whatever is left is surplus and is never assigned to an envelope.

    Amounts are computed at full precision and rounded to cents only at the end. The
    rounding drift (income - sum(rounded allocations) - rounded surplus) is added to the
    largest rounded allocation so that allocations + surplus equal the income exactly.

    Args:
        income_amount: The income to distribute. Normalized to cents before allocation.
        envelopes: Envelopes in caller order. Tracking-only envelopes are ignored.
        cc_first: Fund credit card holding envelopes before the tiers.

    Raises:
        ValidationError: negative income, a negative regular_amount_needed, or an
            envelope id listed twice.
    """
    income = to_decimal(income_amount, "income_amount")
    if income < 0:
        raise ValidationError(f"Income amount cannot be negative ({income}).")
    income = quantize_money(income)

    envelopes = [env for env in envelopes if not env.is_tracking]

    needs: Dict[str, Decimal] = {}
    for envelope in envelopes:
        if envelope.envelope_id in needs:
            raise ValidationError(f"Envelope {envelope.envelope_id} appears more than once.")
        need = to_decimal(envelope.regular_amount_needed, "regular_amount_needed")
        if need < 0:
            raise ValidationError(
                f"Envelope {envelope.envelope_id} has a negative regular amount needed ({need})."
            )
        needs[envelope.envelope_id] = need

    # --- 1 & 2. Full precision pass ---
    remaining = income
    funded: List[Tuple[WaterfallEnvelope, Decimal]] = []
    shortfalls: Dict[str, Decimal] = {}

    for envelope in _funding_order(envelopes, cc_first):
        need = needs[envelope.envelope_id]
        allocated = min(remaining, need)
        remaining -= allocated

        if allocated > ZERO:
            funded.append((envelope, allocated))
        if need - allocated > ZERO:
            shortfalls[envelope.envelope_id] = quantize_money(need - allocated)

    # --- 3. Round, then push the drift into the largest allocation ---
    rounded = [quantize_money(amount) for _, amount in funded]
    surplus = quantize_money(remaining)
    drift = income - sum(rounded, ZERO) - surplus

    if drift != ZERO:
        if rounded:
            _absorb_drift(rounded, drift)
        else:
            surplus += drift

    allocations = [
        EnvelopeAllocation(
            envelope_id=envelope.envelope_id,
            name=envelope.name,
            amount=amount,
            is_regular=True,
            priority=envelope.priority,
        )
        for (envelope, _), amount in zip(funded, rounded)
        # A sliver that rounded to zero is not an allocation
        if amount > ZERO
    ]

    by_priority: Dict[EnvelopePriority, Decimal] = {tier: Decimal("0.00") for tier in TIER_ORDER}
    for allocation in allocations:
        by_priority[allocation.priority] += allocation.amount

    return AllocationResult(
        income_amount=income,
        allocations=allocations,
        total_regular=sum((a.amount for a in allocations), Decimal("0.00")),
        surplus=surplus,
        surplus_status=SurplusStatus.AVAILABLE if surplus > ZERO else SurplusStatus.EXACT,
        by_priority=by_priority,
        shortfalls=shortfalls,
    )


def recommend_strategy(bank_balance, credit_card_debt) -> StrategyRecommendation:
    """
    Suggests whether the credit card holding envelope should be funded before the tiers,
    not at all, or with a share of the balance (hybrid).
    """
    balance = to_decimal(bank_balance, "bank_balance")
    debt = to_decimal(credit_card_debt, "credit_card_debt")

    if debt <= ZERO:
        return StrategyRecommendation(
            strategy=AllocationStrategy.ENVELOPES_ONLY,
            reason="No credit card debt to cover.",
        )

    if balance >= debt * 2:
        return StrategyRecommendation(
            strategy=AllocationStrategy.CREDIT_FIRST,
            reason="You have enough to fully cover your credit card debt and still fund your envelopes.",
        )

    if balance >= debt * CREDIT_FIRST_COVER_RATIO:
        return StrategyRecommendation(
            strategy=AllocationStrategy.CREDIT_FIRST,
            reason="Covering your credit card debt will help you avoid interest charges.",
        )

    if balance >= debt * HYBRID_COVER_RATIO:
        return StrategyRecommendation(
            strategy=AllocationStrategy.HYBRID,
            reason="Split your funds between credit card and essential envelopes.",
            suggested_hybrid_amount=(balance * HYBRID_CARD_SHARE).quantize(Decimal("1"), rounding=ROUND_HALF_UP),
        )

    return StrategyRecommendation(
        strategy=AllocationStrategy.ENVELOPES_ONLY,
        reason="Focus on essential envelopes first; the credit card debt can be worked down over time.",
    )


def calculate_available_funds(bank_balance, credit_card_debt, strategy, hybrid_amount=None) -> AvailableFunds:
    """How a balance splits between the card and the envelopes under each strategy."""
    balance = to_decimal(bank_balance, "bank_balance")
    debt = to_decimal(credit_card_debt, "credit_card_debt")
    strategy = AllocationStrategy(strategy)

    if strategy is AllocationStrategy.CREDIT_FIRST:
        return AvailableFunds(
            available_for_envelopes=max(ZERO, balance - debt),
            credit_card_allocation=min(debt, balance),
        )

    if strategy is AllocationStrategy.HYBRID:
        card = min(to_decimal(hybrid_amount or ZERO, "hybrid_amount"), balance)
        return AvailableFunds(
            available_for_envelopes=max(ZERO, balance - card),
            credit_card_allocation=card,
        )

    return AvailableFunds(available_for_envelopes=balance, credit_card_allocation=ZERO)
