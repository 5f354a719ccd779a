# feeflow/services/notification_dispatcher.py - Fan-out of reminders and receipts
"""
Notification dispatch.

One logical send fans out to up to four deliveries (student email, student
SMS, parent email, parent SMS). A channel is used only when the matching
contact field is present. Channels run concurrently, each bounded by a
timeout, and a failure on one never affects the others.
"""
import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable, List, Optional, Protocol, Tuple

from feeflow.core.config import settings
from feeflow.core.logging_config import mask_contact
from feeflow.schemas.fee_due import FeeDetails, PaymentDetails, StudentContact
from feeflow.schemas.notification import ChannelOutcome, DeliveryResult, GatewayResponse
from feeflow.services.email_service import EmailService
from feeflow.services.sms_service import SmsService
from feeflow.services.templates import MessageTemplates

logger = logging.getLogger(__name__)


class NotificationGateway(Protocol):
    async def send_email(self, to_email: str, subject: str, body_html: str) -> GatewayResponse: ...

    async def send_sms(self, to_phone: str, text: str) -> GatewayResponse: ...


class ProviderGateway:
    """Routes email to SMTP and SMS to the HTTP provider"""

    def __init__(self, email_service: Optional[EmailService] = None, sms_service: Optional[SmsService] = None):
        self.email_service = email_service or EmailService()
        self.sms_service = sms_service or SmsService()

    async def send_email(self, to_email: str, subject: str, body_html: str) -> GatewayResponse:
        return await self.email_service.send_email(to_email, subject, body_html)

    async def send_sms(self, to_phone: str, text: str) -> GatewayResponse:
        return await self.sms_service.send_sms(to_phone, text)


class NotificationDispatcher:
    def __init__(
        self,
        gateway: NotificationGateway,
        templates: Optional[MessageTemplates] = None,
        channel_timeout: Optional[float] = None,
    ):
        self.gateway = gateway
        self.templates = templates or MessageTemplates()
        self.channel_timeout = channel_timeout or settings.CHANNEL_TIMEOUT_SECONDS

    async def send_reminder(
        self,
        student: StudentContact,
        fee: FeeDetails,
        days_until_due: int,
    ) -> DeliveryResult:
        """Send one fee reminder to the student and the parent over every available channel"""
        subject = self.templates.reminder_subject(days_until_due)
        sends: List[Tuple[str, str, Callable[[], Awaitable[GatewayResponse]]]] = []

        if student.email:
            html = self.templates.render_reminder_email(student, fee, days_until_due)
            sends.append(("student_email", student.email,
                          partial(self.gateway.send_email, student.email, subject, html)))
        if student.phone:
            text = self.templates.render_reminder_sms(student, fee, days_until_due)
            sends.append(("student_sms", student.phone, partial(self.gateway.send_sms, student.phone, text)))
        if student.parent_email:
            html = self.templates.render_reminder_email(student, fee, days_until_due, for_parent=True)
            sends.append(("parent_email", student.parent_email,
                          partial(self.gateway.send_email, student.parent_email, subject, html)))
        if student.parent_phone:
            text = self.templates.render_reminder_sms(student, fee, days_until_due, for_parent=True)
            sends.append(("parent_sms", student.parent_phone,
                          partial(self.gateway.send_sms, student.parent_phone, text)))

        return await self._fan_out(sends)

    async def send_payment_confirmation(
        self,
        student: StudentContact,
        payment: PaymentDetails,
    ) -> DeliveryResult:
        """Email a payment receipt to the student and the parent"""
        subject = self.templates.payment_confirmation_subject()
        sends: List[Tuple[str, str, Callable[[], Awaitable[GatewayResponse]]]] = []

        if student.email:
            html = self.templates.render_payment_confirmation(student, payment)
            sends.append(("student_email", student.email,
                          partial(self.gateway.send_email, student.email, subject, html)))
        if student.parent_email:
            html = self.templates.render_payment_confirmation(student, payment, for_parent=True)
            sends.append(("parent_email", student.parent_email,
                          partial(self.gateway.send_email, student.parent_email, subject, html)))

        return await self._fan_out(sends)

    async def _fan_out(self, sends: List[Tuple[str, str, Callable[[], Awaitable[GatewayResponse]]]]) -> DeliveryResult:
        outcomes = await asyncio.gather(
            *(self._deliver(channel, recipient, send) for channel, recipient, send in sends)
        )
        return DeliveryResult(outcomes={o.channel: o for o in outcomes})

    async def _deliver(
        self,
        channel: str,
        recipient: str,
        send: Callable[[], Awaitable[GatewayResponse]],
    ) -> ChannelOutcome:
        try:
            response = await asyncio.wait_for(send(), timeout=self.channel_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{channel} to {mask_contact(recipient)} timed out after {self.channel_timeout}s")
            return ChannelOutcome(channel=channel, recipient=recipient, success=False,
                                  error="timeout", timed_out=True)
        except Exception as e:
            logger.error(f"{channel} to {mask_contact(recipient)} failed: {e}", exc_info=True)
            return ChannelOutcome(channel=channel, recipient=recipient, success=False, error=str(e))

        if not response.success:
            logger.warning(f"{channel} to {mask_contact(recipient)} failed: {response.error}")
        return ChannelOutcome(
            channel=channel,
            recipient=recipient,
            success=response.success,
            message_id=response.message_id,
            error=response.error,
        )
