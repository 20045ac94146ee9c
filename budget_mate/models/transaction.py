# models/transaction.py

import uuid
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DECIMAL, Date, DateTime, Boolean, ForeignKey, Text
from datetime import date, datetime
from decimal import Decimal

from ..db.base import Base

class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True)
    envelope_id: Mapped[Optional[str]] = mapped_column(ForeignKey("envelopes.id"), nullable=True)

    # --- Source Data ---
    # Positive = credit (income), negative = debit
    amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2))
    transaction_date: Mapped[date] = mapped_column("date", Date)
    description: Mapped[str] = mapped_column(Text, default="")
    # 'income', 'expense', 'allocation' (child of an auto-allocation plan)
    transaction_type: Mapped[str] = mapped_column(String(20), default="expense")

    reconciled: Mapped[bool] = mapped_column(Boolean, default=False)

    # --- Auto-allocation links ---
    # Plain column: allocation_plans already points back here through source_transaction_id
    allocation_plan_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    is_auto_allocated: Mapped[bool] = mapped_column(Boolean, default=False)
    parent_transaction_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
