# feeflow/services/status_engine.py - Time-derived fee-due status transitions
import logging
from datetime import date
from typing import Callable, ContextManager

from sqlalchemy.orm import Session

from feeflow.repositories.fee_due_repository import FeeDueRepository
from feeflow.schemas.scheduler import StatusTransitionResult

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


class StatusTransitionEngine:
    """
    Recomputes pending/due/overdue from the due date.

    Rules, against ``today``:
      1. pending with due_date == today          -> due
      2. pending or due with due_date < today    -> overdue

    paid, partially_paid and overdue rows never match either rule, so
    running the pass again on the same day changes nothing.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def advance_statuses(self, today: date) -> StatusTransitionResult:
        """Both bulk updates commit together before this returns. Database errors propagate."""
        logger.info(f"Running fee status update for {today.isoformat()}")
        with self.session_factory() as session:
            repo = FeeDueRepository(session)
            marked_due = repo.mark_due(today)
            marked_overdue = repo.mark_overdue(today)

        result = StatusTransitionResult(
            run_date=today,
            marked_due=marked_due,
            marked_overdue=marked_overdue,
        )
        logger.info(
            f"Fee statuses updated: {result.marked_due} due, {result.marked_overdue} overdue"
        )
        return result
