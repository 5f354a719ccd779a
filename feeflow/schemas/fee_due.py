# feeflow/schemas/fee_due.py
from pydantic import BaseModel, Field, validator
from typing import Optional, Literal
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from feeflow.core.exceptions import MissingRelatedData

FeeDueStatus = Literal["pending", "due", "overdue", "partially_paid", "paid"]


class StudentContact(BaseModel):
    """Contact surface of a student used for reminders"""
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    parent_name: Optional[str] = None
    parent_email: Optional[str] = None
    parent_phone: Optional[str] = None
    course: Optional[str] = None

    @validator('email', 'phone', 'parent_email', 'parent_phone')
    def blank_contact_is_missing(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    class Config:
        from_attributes = True


class FeeStructureSummary(BaseModel):
    id: UUID
    name: str
    course: str
    amount: Decimal

    class Config:
        from_attributes = True


class FeeDueRecord(BaseModel):
    id: UUID
    student_id: UUID
    fee_structure_id: UUID
    payment_id: Optional[UUID] = None
    due_date: date
    amount: Decimal
    amount_paid: Decimal = Decimal('0.00')
    amount_remaining: Decimal
    status: FeeDueStatus
    payment_period: Optional[str] = None
    grace_period_days: int = 0
    late_fee_applied: Decimal = Decimal('0.00')
    reminder_sent_7days: bool = False
    reminder_sent_3days: bool = False
    reminder_sent_1day: bool = False
    reminder_sent_overdue: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FeeDueWithRelations(BaseModel):
    """A fee-due together with its student and fee structure, either of which may be missing"""
    fee_due: FeeDueRecord
    student: Optional[StudentContact] = None
    fee_structure: Optional[FeeStructureSummary] = None

    @property
    def is_complete(self) -> bool:
        return self.student is not None and self.fee_structure is not None


class FeeDetails(BaseModel):
    """Fee fields rendered into reminder content"""
    fee_name: str
    course: Optional[str] = None
    amount: Decimal
    due_date: date
    period: Optional[str] = None
    late_fee: Decimal = Decimal('0.00')

    @classmethod
    def from_relations(cls, item: FeeDueWithRelations) -> "FeeDetails":
        if not item.is_complete:
            raise MissingRelatedData(item.fee_due.id)
        return cls(
            fee_name=item.fee_structure.name,
            course=item.fee_structure.course,
            amount=item.fee_due.amount,
            due_date=item.fee_due.due_date,
            period=item.fee_due.payment_period,
            late_fee=item.fee_due.late_fee_applied,
        )


class PaymentDetails(BaseModel):
    """Payment fields rendered into a confirmation receipt"""
    receipt_number: str
    payment_date: date
    fee_name: str
    period: Optional[str] = None
    payment_mode: str
    transaction_id: Optional[str] = None
    amount: Decimal


class MarkPaidRequest(BaseModel):
    payment_id: Optional[UUID] = None
    amount_paid: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)


class FeeDueOut(BaseModel):
    fee_due: FeeDueRecord
    student: Optional[StudentContact] = None
    fee_structure: Optional[FeeStructureSummary] = None
