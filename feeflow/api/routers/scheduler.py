# feeflow/api/routers/scheduler.py - Inspect and trigger scheduler runs
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from feeflow.api.deps.auth import require_admin, require_staff
from feeflow.api.deps.services import get_scheduler
from feeflow.scheduler.fee_scheduler import FeeScheduler, SchedulerBusy
from feeflow.schemas.scheduler import SchedulerStatus

router = APIRouter()


@router.get("/status", response_model=SchedulerStatus, dependencies=[Depends(require_staff)])
async def scheduler_status(scheduler: FeeScheduler = Depends(get_scheduler)):
    return scheduler.status()


@router.post("/run/status-update", dependencies=[Depends(require_admin)])
async def run_status_update(
    run_date: Optional[date] = None,
    scheduler: FeeScheduler = Depends(get_scheduler),
):
    """Run the status transition now"""
    try:
        result = await scheduler.run_status_update(run_date)
    except SchedulerBusy:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A scheduler run is already in progress")
    if result is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Status update failed, see logs")
    return result


@router.post("/run/reminders", dependencies=[Depends(require_admin)])
async def run_reminders(
    run_date: Optional[date] = None,
    scheduler: FeeScheduler = Depends(get_scheduler),
):
    """Run the status transition and the reminder pass now"""
    try:
        report = await scheduler.run_reminders(run_date)
    except SchedulerBusy:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A scheduler run is already in progress")
    if report is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Reminder run failed, see logs")
    return report
