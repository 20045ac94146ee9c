# models/envelope.py

import uuid
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DECIMAL, Date, DateTime, Integer, Boolean, ForeignKey
from datetime import date, datetime
from decimal import Decimal

from ..db.base import Base
from ..db.enums import Frequency, EnvelopePriority, EnumString

class Envelope(Base):
    __tablename__ = "envelopes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True)

    name: Mapped[str] = mapped_column(String(120))
    # 'expense' envelopes take part in allocation; 'income' / 'tracking' ones do not
    envelope_type: Mapped[str] = mapped_column(String(20), default="expense", index=True)

    # --- Waterfall inputs ---
    priority: Mapped[EnvelopePriority] = mapped_column(
        EnumString(EnvelopePriority, 20), default=EnvelopePriority.DISCRETIONARY
    )
    # Credit card holding envelope, funded before the tiers under the credit_first strategy
    is_cc_holding: Mapped[bool] = mapped_column(Boolean, default=False)
    # Amount budgeted into this envelope every household pay cycle
    pay_cycle_amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    # Caller-visible order inside a tier
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    # --- Bill definition ---
    target_amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    frequency: Mapped[Frequency] = mapped_column(EnumString(Frequency, 20), default=Frequency.MONTHLY)
    # Either an absolute due date or a recurring day of month (1-31)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    due_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bill_cycle_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # --- Balances ---
    current_amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    opening_balance: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
