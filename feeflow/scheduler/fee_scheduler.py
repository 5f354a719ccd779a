# feeflow/scheduler/fee_scheduler.py - Daily triggers for status updates and reminders
import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from feeflow.core.config import Settings, settings as default_settings
from feeflow.schemas.scheduler import JobRunInfo, ReminderRunReport, SchedulerStatus, StatusTransitionResult
from feeflow.services.reminder_policy import ReminderPolicyEngine
from feeflow.services.status_engine import StatusTransitionEngine

logger = logging.getLogger(__name__)

STATUS_UPDATE_JOB = "status_update"
REMINDER_JOB = "reminders"


def next_run_after(now: datetime, hour: int, minute: int) -> datetime:
    """First datetime strictly after ``now`` at hour:minute, in now's timezone"""
    candidate = datetime.combine(now.date(), time(hour, minute), tzinfo=now.tzinfo)
    if candidate <= now:
        candidate = datetime.combine(now.date() + timedelta(days=1), time(hour, minute), tzinfo=now.tzinfo)
    return candidate


def seconds_until(now: datetime, run_at: datetime) -> float:
    """Elapsed seconds between two aware datetimes, compared in UTC so DST shifts count"""
    return (run_at.astimezone(timezone.utc) - now.astimezone(timezone.utc)).total_seconds()



class SchedulerBusy(Exception):
    """Another run holds the scheduler lock"""


class DailyJob:
    def __init__(self, name: str, hour: int, minute: int, action: Callable[[], Awaitable[None]]):
        self.name = name
        self.hour = hour
        self.minute = minute
        self.action = action
        self.next_run_at: Optional[datetime] = None


class FeeScheduler:
    """
    Owns the two daily jobs and the lock that keeps runs from overlapping.

    The status update fires daily at STATUS_UPDATE_HOUR:MINUTE and once at
    start. The reminder job fires at REMINDER_HOUR:MINUTE and always runs a
    status update first, so reminders see current statuses. A trigger that
    finds a run already in flight is skipped.
    """

    def __init__(
        self,
        status_engine: StatusTransitionEngine,
        reminder_engine: ReminderPolicyEngine,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.status_engine = status_engine
        self.reminder_engine = reminder_engine
        self.config = config or default_settings
        self._tz: Optional[tzinfo] = self.config.scheduler_tz
        self._clock = clock or self._default_clock
        self._lock = asyncio.Lock()
        self._tasks: List[asyncio.Task] = []
        self._running = False
        self._jobs = [
            DailyJob(STATUS_UPDATE_JOB, self.config.STATUS_UPDATE_HOUR,
                     self.config.STATUS_UPDATE_MINUTE, self._scheduled_status_update),
            DailyJob(REMINDER_JOB, self.config.REMINDER_HOUR,
                     self.config.REMINDER_MINUTE, self._scheduled_reminders),
        ]
        self._info: Dict[str, JobRunInfo] = {job.name: JobRunInfo(job=job.name) for job in self._jobs}

    def _default_clock(self) -> datetime:
        if self._tz is not None:
            return datetime.now(self._tz)
        return datetime.now().astimezone()

    def today(self) -> date:
        return self._clock().date()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def start(self) -> None:
        """Schedule the daily jobs on the running event loop"""
        if self._running:
            return
        self._running = True
        for job in self._jobs:
            self._tasks.append(asyncio.create_task(self._job_loop(job), name=f"fee-job-{job.name}"))
        if self.config.RUN_STATUS_UPDATE_ON_STARTUP:
            self._tasks.append(asyncio.create_task(self._scheduled_status_update(), name="fee-job-startup"))

        logger.info("Fee dues scheduler initialized successfully")
        logger.info(f"- Status updates: daily at {self.config.STATUS_UPDATE_HOUR:02d}:{self.config.STATUS_UPDATE_MINUTE:02d}")
        logger.info(f"- Reminder checks: daily at {self.config.REMINDER_HOUR:02d}:{self.config.REMINDER_MINUTE:02d}")

    async def stop(self) -> None:
        """Cancel pending triggers and wait for them to finish"""
        if not self._running:
            return
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Fee dues scheduler stopped")

    def _next_run(self, now: datetime, job: DailyJob) -> datetime:
        if self._tz is not None:
            return next_run_after(now, job.hour, job.minute)
        # Process local time: resolve the offset for the target date, not today's
        return next_run_after(now.replace(tzinfo=None), job.hour, job.minute).astimezone()

    async def _job_loop(self, job: DailyJob) -> None:
        while True:
            now = self._clock()
            job.next_run_at = self._next_run(now, job)
            self._info[job.name].next_run_at = job.next_run_at
            delay = seconds_until(now, job.next_run_at)
            await asyncio.sleep(delay)
            logger.info(f"Running scheduled {job.name} job")
            try:
                await job.action()
            except Exception as e:
                # keep the daily trigger alive, tomorrow's run retries
                logger.error(f"Scheduled {job.name} job crashed: {e}", exc_info=True)
                self._record_failure(job.name, str(e))

    async def _scheduled_status_update(self) -> None:
        try:
            await self.run_status_update()
        except SchedulerBusy:
            self._info[STATUS_UPDATE_JOB].skipped_runs += 1
            logger.warning("Status update skipped: a previous run is still in progress")

    async def _scheduled_reminders(self) -> None:
        try:
            await self.run_reminders()
        except SchedulerBusy:
            self._info[REMINDER_JOB].skipped_runs += 1
            logger.warning("Reminder check skipped: a previous run is still in progress")

    async def run_status_update(self, today: Optional[date] = None) -> Optional[StatusTransitionResult]:
        """
        Run the status transition once.

        Returns the result, or None if the database failed (logged, retried by
        the next trigger). Raises SchedulerBusy if a run is in progress.
        """
        if self._lock.locked():
            raise SchedulerBusy()
        async with self._lock:
            return await self._status_phase(today or self.today())

    async def run_reminders(self, today: Optional[date] = None) -> Optional[ReminderRunReport]:
        """
        Status transition followed by the reminder pass.

        Returns the reminder report, or None if either phase failed on the database.
        Raises SchedulerBusy if a run is in progress.
        """
        if self._lock.locked():
            raise SchedulerBusy()
        async with self._lock:
            today = today or self.today()
            if await self._status_phase(today) is None:
                logger.error("Reminder check aborted: status update failed")
                self._record_failure(REMINDER_JOB, "status update failed")
                return None
            return await self._reminder_phase(today)

    async def _status_phase(self, today: date) -> Optional[StatusTransitionResult]:
        info = self._start_info(STATUS_UPDATE_JOB)
        try:
            result = await asyncio.to_thread(self.status_engine.advance_statuses, today)
        except SQLAlchemyError as e:
            logger.error(f"Error updating fee statuses: {e}", exc_info=True)
            self._record_failure(STATUS_UPDATE_JOB, str(e))
            return None
        self._record_success(info, result.model_dump(mode="json"))
        return result

    async def _reminder_phase(self, today: date) -> Optional[ReminderRunReport]:
        info = self._start_info(REMINDER_JOB)
        try:
            report = await self.reminder_engine.process_reminders(today)
        except SQLAlchemyError as e:
            logger.error(f"Error sending due reminders: {e}", exc_info=True)
            self._record_failure(REMINDER_JOB, str(e))
            return None
        self._record_success(info, report.model_dump(mode="json"))
        return report

    def _start_info(self, job_name: str) -> JobRunInfo:
        info = self._info[job_name]
        info.started_at = self._clock()
        info.finished_at = None
        return info

    def _record_success(self, info: JobRunInfo, report: dict) -> None:
        info.finished_at = self._clock()
        info.succeeded = True
        info.error = None
        info.last_report = report

    def _record_failure(self, job_name: str, error: str) -> None:
        info = self._info[job_name]
        info.finished_at = self._clock()
        info.succeeded = False
        info.error = error

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            running=self._running,
            busy=self.busy,
            jobs={name: info.model_copy() for name, info in self._info.items()},
        )
