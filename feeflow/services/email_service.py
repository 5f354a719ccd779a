# feeflow/services/email_service.py - SMTP delivery for reminder and receipt emails
import asyncio
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid
from typing import Optional
import logging

from feeflow.core.config import Settings, settings as default_settings
from feeflow.core.logging_config import mask_contact
from feeflow.schemas.notification import GatewayResponse

logger = logging.getLogger(__name__)


class EmailService:
    """Email service using SMTP"""

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.smtp_host = config.SMTP_HOST
        self.smtp_port = config.SMTP_PORT
        self.smtp_user = config.SMTP_USER
        self.smtp_password = config.SMTP_PASSWORD
        self.from_email = config.SMTP_FROM_EMAIL
        self.from_name = config.SMTP_FROM_NAME
        self.use_tls = config.SMTP_USE_TLS
        self.timeout = config.SMTP_TIMEOUT_SECONDS

    @property
    def configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> GatewayResponse:
        """Send an email via SMTP without blocking the event loop"""
        if not self.configured:
            logger.warning(f"SMTP is not configured, email to {mask_contact(to_email)} not sent")
            return GatewayResponse(success=False, error="SMTP is not configured")
        return await asyncio.to_thread(self._send, to_email, subject, body_html, body_text)

    def _send(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str],
    ) -> GatewayResponse:
        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email
            msg['Message-ID'] = make_msgid()

            if body_text:
                msg.attach(MIMEText(body_text, 'plain', 'utf-8'))
            msg.attach(MIMEText(body_html, 'html', 'utf-8'))

            # timeout bounds the connect and every command
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent successfully to {mask_contact(to_email)}")
            return GatewayResponse(success=True, message_id=msg['Message-ID'])

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {mask_contact(to_email)}: {e}", exc_info=True)
            return GatewayResponse(success=False, error=str(e))
