# models/income_source.py

import uuid
from typing import List
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DECIMAL, Integer, Boolean, ForeignKey
from decimal import Decimal

from ..db.base import Base
from ..db.enums import Frequency, EnumString

class IncomeSource(Base):
    __tablename__ = "income_sources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True)

    name: Mapped[str] = mapped_column(String(120))
    # Per occurrence, never annualized
    amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    frequency: Mapped[Frequency] = mapped_column(EnumString(Frequency, 20), default=Frequency.FORTNIGHTLY)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    allocations: Mapped[List["IncomeAllocation"]] = relationship(
        back_populates="income_source",
        order_by="IncomeAllocation.position",
        cascade="all, delete-orphan",
    )


class IncomeAllocation(Base):
    """How much of one income occurrence is earmarked for one envelope."""
    __tablename__ = "income_allocations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    income_source_id: Mapped[str] = mapped_column(ForeignKey("income_sources.id", ondelete="CASCADE"), index=True)
    envelope_id: Mapped[str] = mapped_column(ForeignKey("envelopes.id", ondelete="CASCADE"), index=True)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    position: Mapped[int] = mapped_column(Integer, default=0)

    income_source: Mapped["IncomeSource"] = relationship(back_populates="allocations")
