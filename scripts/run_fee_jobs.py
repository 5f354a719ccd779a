#!/usr/bin/env python3
"""
Run the fee-due jobs once, outside the API process.
Usage: python scripts/run_fee_jobs.py reminders --date 2025-01-15
"""
import argparse
import asyncio
import json
import sys
from datetime import date
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from feeflow.core.db import db_manager  # noqa: E402
from feeflow.core.logging_config import configure_logging  # noqa: E402
from feeflow.scheduler.factory import build_scheduler  # noqa: E402


async def run(job: str, run_date):
    scheduler = build_scheduler(database=db_manager)
    if job == "status-update":
        result = await scheduler.run_status_update(run_date)
    else:
        # reminders always advance statuses first
        result = await scheduler.run_reminders(run_date)
    return result


def main() -> int:
    parser = argparse.ArgumentParser(description="Run fee-due status updates or reminders once")
    parser.add_argument("job", choices=["status-update", "reminders"])
    parser.add_argument("--date", type=date.fromisoformat, default=None,
                        help="Treat this date (YYYY-MM-DD) as today")
    args = parser.parse_args()

    configure_logging()
    try:
        result = asyncio.run(run(args.job, args.date))
    finally:
        db_manager.close()

    if result is None:
        print("Job failed, see logs", file=sys.stderr)
        return 1
    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
