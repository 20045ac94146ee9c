# api/v1/envelopes.py

from datetime import date
from fastapi import APIRouter, Depends
from typing import List, Optional

from ..dependencies import get_current_user_id, get_envelope_report_service, to_http_exception
from ...errors import BudgetMateError
from ...schemas.outcomes import EnvelopeGapReport, EnvelopeOpeningBalanceReport
from ...schemas.requests import IdealAllocationOut
from ...services.envelope_report_service import EnvelopeReportService

router = APIRouter(
    prefix="/envelopes",
    tags=["Envelope Reports"],
)


@router.get(
    "/gap-report",
    response_model=List[EnvelopeGapReport],
    summary="Ahead / on track / behind status for every expense envelope."
)
async def get_gap_report(
    as_of: Optional[date] = None,
    service: EnvelopeReportService = Depends(get_envelope_report_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        return await service.gap_report(user_id, as_of)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "/opening-balance-report",
    response_model=List[EnvelopeOpeningBalanceReport],
    summary="Opening balance still needed for every envelope with a target and due date."
)
async def get_opening_balance_report(
    as_of: Optional[date] = None,
    service: EnvelopeReportService = Depends(get_envelope_report_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        return await service.opening_balance_report(user_id, as_of)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "/{envelope_id}/ideal-allocation",
    response_model=IdealAllocationOut,
    summary="Ideal per-pay amount for one envelope across all active income sources."
)
async def get_ideal_allocation(
    envelope_id: str,
    service: EnvelopeReportService = Depends(get_envelope_report_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        ideal = await service.ideal_allocation_for(user_id, envelope_id)
    except BudgetMateError as exc:
        raise to_http_exception(exc) from exc
    return IdealAllocationOut(envelope_id=envelope_id, ideal_per_cycle=ideal)
