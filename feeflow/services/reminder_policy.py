# feeflow/services/reminder_policy.py - Decides which reminders are owed and sends them
import asyncio
import logging
from collections import Counter
from datetime import date
from typing import Callable, ContextManager, List, NamedTuple, Optional, Sequence

from sqlalchemy.orm import Session

from feeflow.core.config import settings
from feeflow.models.fee_due import REMINDER_STATUSES
from feeflow.repositories.fee_due_repository import FeeDueRepository
from feeflow.schemas.fee_due import FeeDetails, FeeDueRecord, FeeDueWithRelations
from feeflow.schemas.notification import DeliveryResult
from feeflow.schemas.scheduler import ReminderRunReport
from feeflow.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


class ReminderThreshold(NamedTuple):
    key: str
    days: Optional[int]  # None means any overdue day
    flag: str

    def matches(self, days_until_due: int) -> bool:
        if self.days is None:
            return days_until_due < 0
        return days_until_due == self.days


REMINDER_THRESHOLDS: Sequence[ReminderThreshold] = (
    ReminderThreshold("7days", 7, "reminder_sent_7days"),
    ReminderThreshold("3days", 3, "reminder_sent_3days"),
    ReminderThreshold("1day", 1, "reminder_sent_1day"),
    ReminderThreshold("overdue", None, "reminder_sent_overdue"),
)


def days_until_due(due_date: date, today: date) -> int:
    """Whole days from today to the due date; negative once overdue"""
    return (due_date - today).days


def select_threshold(fee_due: FeeDueRecord, days: int) -> Optional[ReminderThreshold]:
    """The threshold owed at ``days``, or None when nothing is owed or it was already sent"""
    for threshold in REMINDER_THRESHOLDS:
        if threshold.matches(days) and not getattr(fee_due, threshold.flag):
            return threshold
    return None


class ReminderPolicyEngine:
    def __init__(
        self,
        session_factory: SessionFactory,
        dispatcher: NotificationDispatcher,
        concurrency: Optional[int] = None,
        flag_requires_delivery: Optional[bool] = None,
        statuses: Sequence[str] = REMINDER_STATUSES,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.concurrency = concurrency or settings.REMINDER_CONCURRENCY
        self.flag_requires_delivery = (
            settings.REMINDER_FLAG_REQUIRES_DELIVERY
            if flag_requires_delivery is None else flag_requires_delivery
        )
        self.statuses = tuple(statuses)

    def load_candidates(self) -> List[FeeDueWithRelations]:
        with self.session_factory() as session:
            return FeeDueRepository(session).find_active_with_relations(self.statuses)

    async def process_reminders(self, today: date) -> ReminderRunReport:
        """
        Send every reminder owed today and record which ones went out.

        Loading errors propagate; per-fee-due errors are logged and counted.
        """
        logger.info(f"Checking for due reminders on {today.isoformat()}")
        candidates = await asyncio.to_thread(self.load_candidates)

        report = ReminderRunReport(run_date=today, examined=len(candidates))
        failures: Counter = Counter()
        thresholds: Counter = Counter()
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(item: FeeDueWithRelations):
            async with semaphore:
                await self._process_one(item, today, report, failures, thresholds)

        await asyncio.gather(*(guarded(item) for item in candidates))

        report.channel_failures = dict(failures)
        report.by_threshold = dict(thresholds)
        logger.info(
            f"Due reminders check completed: {report.examined} examined, "
            f"{report.reminders_attempted} reminders, {report.flags_set} flags set, "
            f"{report.processing_errors} errors"
        )
        return report

    async def _process_one(
        self,
        item: FeeDueWithRelations,
        today: date,
        report: ReminderRunReport,
        failures: Counter,
        thresholds: Counter,
    ) -> None:
        fee_due = item.fee_due
        days = days_until_due(fee_due.due_date, today)
        threshold = select_threshold(fee_due, days)
        if threshold is None:
            return
        report.eligible += 1

        # Orphaned rows are counted, not logged as errors
        if not item.is_complete:
            report.skipped_missing_data += 1
            return

        try:
            result = await self.dispatcher.send_reminder(
                item.student, FeeDetails.from_relations(item), days
            )
            report.reminders_attempted += 1
            report.deliveries_attempted += result.attempted
            thresholds[threshold.key] += 1
            for channel in result.failed_channels:
                failures[channel] += 1

            logger.info(
                f"Reminder sent for fee {fee_due.id} ({threshold.key}): "
                f"{result.attempted} attempted, failed={result.failed_channels}"
            )

            if self._should_set_flag(result):
                self._persist_flag(fee_due, threshold)
                report.flags_set += 1
            else:
                report.flags_withheld += 1
                logger.warning(
                    f"No channel delivered the {threshold.key} reminder for fee {fee_due.id}, "
                    f"flag left unset for retry"
                )
        except Exception as e:
            report.processing_errors += 1
            logger.error(f"Error sending reminder for fee {fee_due.id}: {e}", exc_info=True)

    def _should_set_flag(self, result: DeliveryResult) -> bool:
        if not self.flag_requires_delivery:
            return True
        return result.any_success

    def _persist_flag(self, fee_due: FeeDueRecord, threshold: ReminderThreshold) -> None:
        with self.session_factory() as session:
            FeeDueRepository(session).set_reminder_flag(fee_due.id, threshold.flag)
