# tests/conftest.py - Shared fixtures: in-memory database, recording gateway, seed helpers
import asyncio
import os
import uuid
from datetime import date, timedelta
from decimal import Decimal

# Settings are read at import time
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RUN_STATUS_UPDATE_ON_STARTUP"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["SMS_API_URL"] = ""
os.environ["LOG_FILE_PATH"] = ""

import pytest

from feeflow.core.db import DatabaseManager
from feeflow.models import Base, FeeDue, FeeStructure, Payment, Student
from feeflow.schemas.notification import GatewayResponse
from feeflow.services.notification_dispatcher import NotificationDispatcher
from feeflow.services.templates import MessageTemplates

TODAY = date(2025, 1, 15)


class RecordingGateway:
    """Gateway double that records every message and fails on demand"""

    def __init__(self):
        self.emails = []
        self.sms = []
        self.fail_recipients = set()
        self.raise_recipients = set()
        self.slow_recipients = set()
        self.delay = 0.5

    @property
    def calls(self):
        return self.emails + self.sms

    async def _respond(self, recipient):
        if recipient in self.slow_recipients:
            await asyncio.sleep(self.delay)
        if recipient in self.raise_recipients:
            raise RuntimeError(f"provider exploded for {recipient}")
        if recipient in self.fail_recipients:
            return GatewayResponse(success=False, error="rejected")
        return GatewayResponse(success=True, message_id=f"msg-{len(self.calls)}")

    async def send_email(self, to_email, subject, body_html):
        self.emails.append({"to": to_email, "subject": subject, "body": body_html})
        return await self._respond(to_email)

    async def send_sms(self, to_phone, text):
        self.sms.append({"to": to_phone, "text": text})
        return await self._respond(to_phone)


@pytest.fixture
def database():
    manager = DatabaseManager("sqlite://")
    manager.initialize()
    Base.metadata.create_all(bind=manager.engine)
    yield manager
    Base.metadata.drop_all(bind=manager.engine)
    manager.close()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def templates():
    return MessageTemplates(institute_name="Greenfield Academy", currency="₹")


@pytest.fixture
def dispatcher(gateway, templates):
    return NotificationDispatcher(gateway, templates, channel_timeout=0.1)


@pytest.fixture
def seed(database):
    """Factory inserting a student, a fee structure and one fee-due; returns the fee-due id"""

    def _seed(
        due_date,
        status="pending",
        amount=Decimal("5000.00"),
        amount_paid=Decimal("0.00"),
        email="asha@example.com",
        phone="9876543210",
        parent_email="ravi@example.com",
        parent_phone="9123456780",
        **flags,
    ):
        with database.transaction() as session:
            student = Student(
                serial_number=f"S-{uuid.uuid4().hex[:8]}",
                name="Asha Verma",
                email=email,
                phone=phone,
                parent_name="Ravi Verma",
                parent_email=parent_email,
                parent_phone=parent_phone,
                course="Grade 10",
            )
            structure = FeeStructure(name="Tuition", course="Grade 10", amount=amount)
            session.add_all([student, structure])
            session.flush()
            fee_due = FeeDue(
                student_id=student.id,
                fee_structure_id=structure.id,
                due_date=due_date,
                amount=amount,
                amount_paid=amount_paid,
                amount_remaining=amount - amount_paid,
                payment_period="January 2025",
                status=status,
                **flags,
            )
            session.add(fee_due)
            session.flush()
            return fee_due.id

    return _seed


@pytest.fixture
def load(database):
    def _load(fee_due_id):
        with database.transaction() as session:
            return session.get(FeeDue, fee_due_id)

    return _load


@pytest.fixture
def add_payment(database):
    def _add_payment(fee_due_id, amount, receipt_number="RCP-0001"):
        with database.transaction() as session:
            fee_due = session.get(FeeDue, fee_due_id)
            payment = Payment(
                student_id=fee_due.student_id,
                receipt_number=receipt_number,
                payment_date=TODAY,
                payment_mode="upi",
                transaction_id="UPI123",
                total_amount=amount,
            )
            session.add(payment)
            session.flush()
            return payment.id

    return _add_payment


def days_from_today(n):
    return TODAY + timedelta(days=n)
