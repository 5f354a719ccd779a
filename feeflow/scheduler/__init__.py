from feeflow.scheduler.fee_scheduler import FeeScheduler, SchedulerBusy, next_run_after, seconds_until
from feeflow.scheduler.factory import build_scheduler

__all__ = ["FeeScheduler", "SchedulerBusy", "next_run_after", "seconds_until", "build_scheduler"]
