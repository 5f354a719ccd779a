# feeflow/scheduler/factory.py - Wires engines, dispatcher and gateway for a process
from typing import Optional

from feeflow.core.config import Settings, settings as default_settings
from feeflow.core.db import DatabaseManager, db_manager as default_db_manager
from feeflow.scheduler.fee_scheduler import FeeScheduler
from feeflow.services.email_service import EmailService
from feeflow.services.notification_dispatcher import NotificationDispatcher, ProviderGateway
from feeflow.services.reminder_policy import ReminderPolicyEngine
from feeflow.services.sms_service import SmsService
from feeflow.services.status_engine import StatusTransitionEngine
from feeflow.services.templates import MessageTemplates


def build_dispatcher(config: Optional[Settings] = None) -> NotificationDispatcher:
    config = config or default_settings
    gateway = ProviderGateway(EmailService(config), SmsService(config))
    templates = MessageTemplates(institute_name=config.INSTITUTE_NAME, currency=config.CURRENCY_SYMBOL)
    return NotificationDispatcher(gateway, templates, channel_timeout=config.CHANNEL_TIMEOUT_SECONDS)


def build_scheduler(
    config: Optional[Settings] = None,
    database: Optional[DatabaseManager] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FeeScheduler:
    """Construct the process scheduler. Call once at startup."""
    config = config or default_settings
    database = database or default_db_manager
    dispatcher = dispatcher or build_dispatcher(config)

    status_engine = StatusTransitionEngine(database.transaction)
    reminder_engine = ReminderPolicyEngine(
        database.transaction,
        dispatcher,
        concurrency=config.REMINDER_CONCURRENCY,
        flag_requires_delivery=config.REMINDER_FLAG_REQUIRES_DELIVERY,
    )
    return FeeScheduler(status_engine, reminder_engine, config=config)
