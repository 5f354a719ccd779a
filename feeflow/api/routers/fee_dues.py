# feeflow/api/routers/fee_dues.py - Manual actions on a single fee-due
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from feeflow.api.deps.auth import require_staff
from feeflow.api.deps.services import get_dispatcher, get_scheduler
from feeflow.core.db import get_db
from feeflow.core.exceptions import (
    FeeDueNotFound,
    MissingRelatedData,
    PaymentExceedsBalance,
    PaymentNotFound,
)
from feeflow.repositories.fee_due_repository import FeeDueRepository
from feeflow.scheduler.fee_scheduler import FeeScheduler
from feeflow.schemas.fee_due import FeeDetails, FeeDueOut, MarkPaidRequest, PaymentDetails
from feeflow.services.notification_dispatcher import NotificationDispatcher
from feeflow.services.reminder_policy import days_until_due

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_staff)])


@router.get("/{fee_due_id}", response_model=FeeDueOut)
async def get_fee_due(fee_due_id: UUID, db: Session = Depends(get_db)):
    """Fee-due with its student and fee structure"""
    try:
        item = FeeDueRepository(db).get_with_relations(fee_due_id)
    except FeeDueNotFound:
        raise HTTPException(status_code=404, detail="Fee due not found")
    return FeeDueOut(**item.model_dump())


@router.post("/{fee_due_id}/send-reminder")
async def send_manual_reminder(
    fee_due_id: UUID,
    db: Session = Depends(get_db),
    scheduler: FeeScheduler = Depends(get_scheduler),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Send a reminder now, whatever the fee-due's status.
    Reminder flags are not touched, so scheduled reminders still go out.
    """
    try:
        item = FeeDueRepository(db).get_with_relations(fee_due_id)
    except FeeDueNotFound:
        raise HTTPException(status_code=404, detail="Fee due not found")

    try:
        fee = FeeDetails.from_relations(item)
    except MissingRelatedData as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    days = days_until_due(item.fee_due.due_date, scheduler.today())
    result = await dispatcher.send_reminder(item.student, fee, days)
    logger.info(f"Manual reminder for fee {fee_due_id}: {result.attempted} attempted, failed={result.failed_channels}")

    return {
        "message": "Reminder sent successfully",
        "days_until_due": days,
        "results": result.model_dump(),
    }


@router.post("/{fee_due_id}/mark-paid")
async def mark_as_paid(
    fee_due_id: UUID,
    data: MarkPaidRequest,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Apply a payment (default: the whole remaining balance) and email a receipt when a payment is referenced"""
    repo = FeeDueRepository(db)
    try:
        item = repo.apply_payment(fee_due_id, data.amount_paid, data.payment_id)
        db.commit()
    except FeeDueNotFound:
        raise HTTPException(status_code=404, detail="Fee due not found")
    except PaymentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PaymentExceedsBalance as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    confirmation = None
    if data.payment_id and item.is_complete:
        payment = repo.get_payment(data.payment_id)
        details = PaymentDetails(
            receipt_number=payment.receipt_number,
            payment_date=payment.payment_date,
            fee_name=item.fee_structure.name,
            period=item.fee_due.payment_period,
            payment_mode=payment.payment_mode,
            transaction_id=payment.transaction_id,
            amount=payment.total_amount,
        )
        result = await dispatcher.send_payment_confirmation(item.student, details)
        confirmation = result.model_dump()

    return {
        "fee_due": FeeDueOut(**item.model_dump()).model_dump(mode="json"),
        "confirmation": confirmation,
    }
