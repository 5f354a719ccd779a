# feeflow/api/deps/services.py - Process-wide services stored on app.state
from fastapi import Request

from feeflow.scheduler.fee_scheduler import FeeScheduler
from feeflow.services.notification_dispatcher import NotificationDispatcher


def get_scheduler(request: Request) -> FeeScheduler:
    return request.app.state.scheduler


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher
