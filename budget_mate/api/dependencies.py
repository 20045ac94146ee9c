# api/dependencies.py

import secrets
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..db.database import get_db
from ..errors import (
    BudgetMateError,
    NoEnvelopesError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ..services.allocation_logic.cycles import parse_frequency
from ..services.allocation_plan_service import AllocationPlanService
from ..services.allocation_store import AllocationStore, SqlAlchemyAllocationStore
from ..services.envelope_report_service import EnvelopeReportService
from ..services.plan_review_service import PlanReviewService


# --- USER ID ---
async def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """The calling user's profile id. Authentication happens upstream of this service."""
    return x_user_id


# --- API KEY VALIDATION ---

def get_expected_api_key() -> str:
    """Retrieves BUDGET_MATE_API_KEY from the loaded configuration."""
    return str(config.BUDGET_MATE_API_KEY)


def verify_api_key(
    x_api_key: str = Header(..., alias="X-API-Key"),
    expected_key: str = Depends(get_expected_api_key),
):
    """
    FastAPI Dependency to validate the API key sent in the X-API-Key header.
    """
    # Server Configuration Error (500)
    if not expected_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error: BUDGET_MATE_API_KEY not set for secure validation."
        )

    # Key Validation (401 Unauthorized)
    if not secrets.compare_digest(x_api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API Key provided for Budget Mate Backend Access"
        )

    return x_api_key


# --- STORE & SERVICES ---

def get_allocation_store(db: AsyncSession = Depends(get_db)) -> AllocationStore:
    return SqlAlchemyAllocationStore(db, default_pay_cycle=parse_frequency(config.DEFAULT_PAY_CYCLE))


def get_allocation_plan_service(store: AllocationStore = Depends(get_allocation_store)) -> AllocationPlanService:
    return AllocationPlanService(store, min_auto_amount=config.AUTO_ALLOCATE_MIN_AMOUNT)


def get_plan_review_service(store: AllocationStore = Depends(get_allocation_store)) -> PlanReviewService:
    return PlanReviewService(store)


def get_envelope_report_service(store: AllocationStore = Depends(get_allocation_store)) -> EnvelopeReportService:
    return EnvelopeReportService(store)


# --- ERROR MAPPING ---

def to_http_exception(exc: BudgetMateError) -> HTTPException:
    """Maps engine errors onto the HTTP status the client should see."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NoEnvelopesError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PersistenceError):
        detail = {"message": str(exc), "plan_id": exc.plan_id}
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
