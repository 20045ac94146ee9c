# models/profile.py

from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime
from datetime import datetime

from ..db.base import Base
from ..db.enums import Frequency, AllocationStrategy, EnumString

class Profile(Base):
    """Household settings the allocation engine reads (one row per user)."""
    __tablename__ = "profiles"

    # Same id as the auth user
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # Household pay cycle, the common unit for cross-income comparisons
    pay_cycle: Mapped[Optional[Frequency]] = mapped_column(EnumString(Frequency, 20), nullable=True)

    allocation_strategy: Mapped[AllocationStrategy] = mapped_column(
        EnumString(AllocationStrategy, 20), default=AllocationStrategy.ENVELOPES_ONLY
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
