# feeflow/repositories/fee_due_repository.py - Query/update surface over fee_dues
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from feeflow.core.exceptions import FeeDueNotFound, PaymentExceedsBalance, PaymentNotFound
from feeflow.models.fee_due import FeeDue, REMINDER_STATUSES
from feeflow.models.payment import Payment
from feeflow.schemas.fee_due import (
    FeeDueRecord,
    FeeDueWithRelations,
    FeeStructureSummary,
    StudentContact,
)

logger = logging.getLogger(__name__)

REMINDER_FLAGS = (
    "reminder_sent_7days",
    "reminder_sent_3days",
    "reminder_sent_1day",
    "reminder_sent_overdue",
)


def _decode(fee_due: FeeDue) -> FeeDueWithRelations:
    return FeeDueWithRelations(
        fee_due=FeeDueRecord.model_validate(fee_due),
        student=StudentContact.model_validate(fee_due.student) if fee_due.student else None,
        fee_structure=(
            FeeStructureSummary.model_validate(fee_due.fee_structure)
            if fee_due.fee_structure else None
        ),
    )


class FeeDueRepository:
    """Reads and writes fee-dues on behalf of the scheduler and manual actions"""

    def __init__(self, db: Session):
        self.db = db

    def mark_due(self, today: date) -> int:
        """pending fee-dues falling due today become due"""
        result = self.db.execute(
            update(FeeDue)
            .where(FeeDue.status == "pending", FeeDue.due_date == today)
            .values(status="due", updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def mark_overdue(self, today: date) -> int:
        """pending or due fee-dues whose date has passed become overdue"""
        result = self.db.execute(
            update(FeeDue)
            .where(FeeDue.status.in_(["pending", "due"]), FeeDue.due_date < today)
            .values(status="overdue", updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def update_status(self, fee_due_ids: Iterable[UUID], new_status: str) -> int:
        ids = list(fee_due_ids)
        if not ids:
            return 0
        result = self.db.execute(
            update(FeeDue)
            .where(FeeDue.id.in_(ids))
            .values(status=new_status, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def find_active_with_relations(
        self, statuses: Sequence[str] = REMINDER_STATUSES
    ) -> List[FeeDueWithRelations]:
        """Fee-dues in the given statuses, each with its student and fee structure"""
        rows = self.db.execute(
            select(FeeDue)
            .where(FeeDue.status.in_(list(statuses)))
            .options(selectinload(FeeDue.student), selectinload(FeeDue.fee_structure))
            .order_by(FeeDue.due_date)
        ).scalars().all()
        return [_decode(row) for row in rows]

    def get_with_relations(self, fee_due_id: UUID) -> FeeDueWithRelations:
        fee_due = self._get(fee_due_id)
        return _decode(fee_due)

    def set_reminder_flag(self, fee_due_id: UUID, flag_name: str) -> None:
        """Set one reminder flag to True. Flags are never cleared here."""
        if flag_name not in REMINDER_FLAGS:
            raise ValueError(f"Unknown reminder flag: {flag_name}")
        result = self.db.execute(
            update(FeeDue)
            .where(FeeDue.id == fee_due_id)
            .values({flag_name: True, "updated_at": datetime.utcnow()})
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise FeeDueNotFound(fee_due_id)

    def apply_payment(
        self,
        fee_due_id: UUID,
        amount: Optional[Decimal] = None,
        payment_id: Optional[UUID] = None,
    ) -> FeeDueWithRelations:
        """
        Record a payment against a fee-due.

        Args:
            fee_due_id: Fee-due being paid
            amount: Amount paid now, defaults to the remaining balance
            payment_id: Payment row backing this amount, if any

        Returns:
            The updated fee-due with relations

        Raises:
            FeeDueNotFound: If the fee-due does not exist
            PaymentExceedsBalance: If amount is more than what is still owed
            PaymentNotFound: If payment_id does not reference a recorded payment
        """
        fee_due = self._get(fee_due_id)
        if payment_id and self.get_payment(payment_id) is None:
            raise PaymentNotFound(payment_id)

        paid_now = Decimal(amount) if amount is not None else fee_due.amount_remaining
        if paid_now > fee_due.amount_remaining:
            raise PaymentExceedsBalance(paid_now, fee_due.amount_remaining)

        fee_due.amount_paid = fee_due.amount_paid + paid_now
        fee_due.amount_remaining = fee_due.amount - fee_due.amount_paid
        if payment_id:
            fee_due.payment_id = payment_id

        if fee_due.amount_remaining == 0:
            fee_due.status = "paid"
        elif fee_due.amount_paid > 0:
            fee_due.status = "partially_paid"

        self.db.flush()
        logger.info(
            f"Payment of {paid_now} applied to fee due {fee_due.id}: "
            f"remaining {fee_due.amount_remaining}, status {fee_due.status}"
        )
        return _decode(fee_due)

    def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        return self.db.get(Payment, payment_id)

    def _get(self, fee_due_id: UUID) -> FeeDue:
        fee_due = self.db.execute(
            select(FeeDue)
            .where(FeeDue.id == fee_due_id)
            .options(selectinload(FeeDue.student), selectinload(FeeDue.fee_structure))
        ).scalar_one_or_none()
        if fee_due is None:
            raise FeeDueNotFound(fee_due_id)
        return fee_due
