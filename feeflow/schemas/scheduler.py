# feeflow/schemas/scheduler.py - Reports produced by scheduler runs
from pydantic import BaseModel, Field
from typing import Dict, Optional
from datetime import date, datetime


class StatusTransitionResult(BaseModel):
    run_date: date
    marked_due: int = 0
    marked_overdue: int = 0


class ReminderRunReport(BaseModel):
    run_date: date
    examined: int = 0
    eligible: int = 0
    skipped_missing_data: int = 0
    reminders_attempted: int = 0
    flags_set: int = 0
    flags_withheld: int = 0
    deliveries_attempted: int = 0
    processing_errors: int = 0
    by_threshold: Dict[str, int] = Field(default_factory=dict)
    channel_failures: Dict[str, int] = Field(default_factory=dict)


class JobRunInfo(BaseModel):
    job: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    succeeded: Optional[bool] = None
    error: Optional[str] = None
    skipped_runs: int = 0
    next_run_at: Optional[datetime] = None
    last_report: Optional[dict] = None


class SchedulerStatus(BaseModel):
    running: bool
    busy: bool
    jobs: Dict[str, JobRunInfo] = Field(default_factory=dict)
