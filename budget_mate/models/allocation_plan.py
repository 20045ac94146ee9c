# models/allocation_plan.py

import uuid
from typing import List, Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DECIMAL, DateTime, Integer, Boolean, ForeignKey, Text, UniqueConstraint
from datetime import datetime
from decimal import Decimal

from ..db.base import Base
from ..db.enums import PlanStatus, EnvelopePriority, EnumString

class AllocationPlan(Base):
    """
    A proposed, human-approvable split of one income transaction across envelopes.
    Created 'pending' by the materializer; only the review workflow moves it on.
    """
    __tablename__ = "allocation_plans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True)
    source_transaction_id: Mapped[str] = mapped_column(ForeignKey("transactions.id", ondelete="CASCADE"))

    amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2))
    status: Mapped[PlanStatus] = mapped_column(EnumString(PlanStatus, 20), default=PlanStatus.PENDING, index=True)

    # Summary data for quick display
    regular_total: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    surplus_total: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    envelope_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    applied_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    items: Mapped[List["AllocationPlanItem"]] = relationship(
        back_populates="plan",
        order_by="AllocationPlanItem.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        # A transaction may back at most one plan
        UniqueConstraint("source_transaction_id", name="uq_allocation_plans_source_transaction"),
    )


class AllocationPlanItem(Base):
    __tablename__ = "allocation_plan_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    plan_id: Mapped[str] = mapped_column(ForeignKey("allocation_plans.id", ondelete="CASCADE"), index=True)
    envelope_id: Mapped[str] = mapped_column(ForeignKey("envelopes.id", ondelete="CASCADE"))

    amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2))
    is_regular: Mapped[bool] = mapped_column(Boolean, default=True)
    priority: Mapped[Optional[EnvelopePriority]] = mapped_column(EnumString(EnvelopePriority, 20), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    plan: Mapped["AllocationPlan"] = relationship(back_populates="items")
