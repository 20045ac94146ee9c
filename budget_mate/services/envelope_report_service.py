# services/envelope_report_service.py

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from ..db.enums import Frequency
from ..errors import NotFoundError
from ..schemas.allocation import IncomeAllocationShare
from ..schemas.outcomes import EnvelopeGapReport, EnvelopeOpeningBalanceReport
from ..schemas.records import EnvelopeSnapshot
from .allocation_logic.gap_analysis import analyze_gap
from .allocation_logic.ideal_allocation import calculate_ideal_allocation, ideal_per_cycle_by_envelope
from .allocation_logic.opening_balance import calculate_opening_balance
from .allocation_plan_service import regular_amount_needed
from .allocation_store import AllocationStore


class EnvelopeReportService:
    """Read-only per-envelope reports: schedule gaps and the opening balances still needed."""

    def __init__(self, store: AllocationStore):
        self.store = store

    async def _ideal_amounts(self, user_id: str, pay_cycle: Frequency) -> Dict[str, Decimal]:
        streams = await self.store.load_income_streams(user_id)
        return ideal_per_cycle_by_envelope(streams, pay_cycle)

    @staticmethod
    def _ideal_for(envelope: EnvelopeSnapshot, ideal_amounts: Dict[str, Decimal], pay_cycle: Frequency) -> Decimal:
        # Income stream allocations win over the envelope's own per-pay amount
        if envelope.id in ideal_amounts:
            return ideal_amounts[envelope.id]
        return regular_amount_needed(envelope, pay_cycle)

    async def gap_report(self, user_id: str, now: Optional[date] = None) -> List[EnvelopeGapReport]:
        now = now or date.today()
        envelopes = await self.store.load_envelopes(user_id)
        pay_cycle = await self.store.load_pay_cycle(user_id)
        ideal_amounts = await self._ideal_amounts(user_id, pay_cycle)

        reports = []
        for envelope in envelopes:
            ideal = self._ideal_for(envelope, ideal_amounts, pay_cycle)
            gap = analyze_gap(
                envelope.current_amount,
                envelope.opening_balance,
                ideal,
                envelope.bill_cycle_start_date,
                now,
                pay_cycle,
            )
            reports.append(
                EnvelopeGapReport(envelope_id=envelope.id, name=envelope.name, ideal_per_cycle=ideal, gap=gap)
            )
        return reports

    async def opening_balance_report(
        self, user_id: str, now: Optional[date] = None
    ) -> List[EnvelopeOpeningBalanceReport]:
        """Only envelopes with a positive target and a due date (absolute or day of month) are reported."""
        now = now or date.today()
        envelopes = await self.store.load_envelopes(user_id)
        pay_cycle = await self.store.load_pay_cycle(user_id)
        ideal_amounts = await self._ideal_amounts(user_id, pay_cycle)

        reports = []
        for envelope in envelopes:
            due = envelope.due_date or envelope.due_day
            if envelope.target_amount <= 0 or due is None:
                continue

            ideal = self._ideal_for(envelope, ideal_amounts, pay_cycle)
            opening = calculate_opening_balance(envelope.target_amount, due, ideal, pay_cycle, now)
            reports.append(
                EnvelopeOpeningBalanceReport(
                    envelope_id=envelope.id,
                    name=envelope.name,
                    target_amount=envelope.target_amount,
                    ideal_per_cycle=ideal,
                    opening_balance=opening,
                )
            )
        return reports

    async def ideal_allocation_for(self, user_id: str, envelope_id: str) -> Decimal:
        envelopes = await self.store.load_envelopes(user_id)
        if not any(envelope.id == envelope_id for envelope in envelopes):
            raise NotFoundError(f"Envelope {envelope_id} not found.")

        pay_cycle = await self.store.load_pay_cycle(user_id)
        streams = await self.store.load_income_streams(user_id)

        shares = [
            IncomeAllocationShare(
                income_source_id=stream.id,
                allocation_amount=allocation.amount,
                income_frequency=stream.frequency,
            )
            for stream in streams
            for allocation in stream.allocations
            if allocation.envelope_id == envelope_id
        ]
        return calculate_ideal_allocation(shares, pay_cycle)
