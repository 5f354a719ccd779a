# feeflow/models/payment.py - Payments recorded by the payment flow
from __future__ import annotations
import uuid
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import String, Numeric, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from feeflow.models.base import Base


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    receipt_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    payment_mode: Mapped[str] = mapped_column(String(16), nullable=False)  # cash|card|upi|bank_transfer|cheque|online
    transaction_id: Mapped[str | None] = mapped_column(String(128))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("total_amount > 0", name="ck_payment_amount_positive"),
    )
