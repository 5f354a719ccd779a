# feeflow/models/fee_due.py - One billing obligation for one student and period
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Literal, Optional
from datetime import date, datetime

from sqlalchemy import (
    String, Integer, Boolean, Numeric, ForeignKey, Date, DateTime, Text,
    CheckConstraint, Index
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feeflow.models.base import Base

FeeDueStatus = Literal["pending", "due", "overdue", "partially_paid", "paid"]

FEE_DUE_STATUSES = ("pending", "due", "overdue", "partially_paid", "paid")

# Statuses the scheduled reminder pass looks at
REMINDER_STATUSES = ("pending", "due", "overdue")


def _default_remaining(context):
    return context.get_current_parameters()["amount"]


class FeeDue(Base):
    __tablename__ = "fee_dues"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    fee_structure_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("fee_structures.id", ondelete="CASCADE"), nullable=False
    )
    payment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("payments.id", ondelete="SET NULL"), nullable=True
    )

    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal('0.00'))
    amount_remaining: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=_default_remaining)
    payment_period: Mapped[Optional[str]] = mapped_column(String(64))  # "January 2025", "Q1 2025"
    status: Mapped[FeeDueStatus] = mapped_column(String(16), nullable=False, default="pending")

    grace_period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    late_fee_applied: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal('0.00'))

    # Set once by the reminder pass, never cleared
    reminder_sent_7days: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_sent_3days: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_sent_1day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_sent_overdue: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    student: Mapped[Optional["Student"]] = relationship("Student", back_populates="fee_dues")
    fee_structure: Mapped[Optional["FeeStructure"]] = relationship("FeeStructure", back_populates="fee_dues")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','due','overdue','partially_paid','paid')",
            name="ck_fee_dues_status",
        ),
        CheckConstraint("amount >= 0", name="ck_fee_dues_amount_positive"),
        CheckConstraint("amount_paid >= 0", name="ck_fee_dues_amount_paid_positive"),
        CheckConstraint("amount_remaining >= 0", name="ck_fee_dues_amount_remaining_positive"),
        Index("ix_fee_dues_student", "student_id"),
        Index("ix_fee_dues_status", "status"),
        Index("ix_fee_dues_due_date", "due_date"),
    )
