# tests/test_templates.py
import uuid
from decimal import Decimal

import pytest

from feeflow.schemas.fee_due import FeeDetails, StudentContact
from feeflow.services.templates import MessageTemplates, parent_greeting
from tests.conftest import days_from_today


@pytest.fixture
def student():
    return StudentContact(id=uuid.uuid4(), name="Asha Verma", parent_name="Ravi Verma")


def fee(days, late_fee="0"):
    return FeeDetails(
        fee_name="Tuition",
        course="Grade 10",
        amount=Decimal("12500.50"),
        due_date=days_from_today(days),
        period="January 2025",
        late_fee=Decimal(late_fee),
    )


@pytest.mark.parametrize("days,subject", [
    (7, "Fee Payment Reminder - Due in 7 Days"),
    (1, "Fee Payment Reminder - Due in 1 Day"),
    (0, "Fee Payment Due Today"),
    (-4, "Fee Payment Overdue - Immediate Action Required"),
])
def test_reminder_subject(days, subject):
    assert MessageTemplates.reminder_subject(days) == subject


@pytest.mark.parametrize("days,compact,text", [
    (3, False, "due in 3 days"),
    (1, True, "due in 1 day"),
    (0, False, "due today"),
    (0, True, "DUE TODAY"),
    (-5, False, "5 days overdue"),
    (-1, True, "OVERDUE by 1 day"),
])
def test_days_text(days, compact, text):
    assert MessageTemplates.days_text(days, compact=compact) == text


def test_parent_greeting_without_parent_name():
    student = StudentContact(id=uuid.uuid4(), name="Asha Verma")
    assert parent_greeting(student) == "Parent of Asha Verma"


def test_sms_is_a_single_line(templates, student):
    text = templates.render_reminder_sms(student, fee(3), 3)
    assert "\n" not in text
    assert text.startswith("Dear Asha Verma, Your Tuition fee of ₹12,500.50 is due in 3 days")
    assert text.endswith("-Greenfield Academy")


def test_overdue_email_shows_late_fee(templates, student):
    html = templates.render_reminder_email(student, fee(-2, late_fee="250"), -2)
    assert "FEE OVERDUE" in html
    assert "₹250.00" in html


def test_upcoming_email_hides_late_fee(templates, student):
    html = templates.render_reminder_email(student, fee(7), 7)
    assert "Late Fee" not in html
    assert "FEE DUE REMINDER" in html


def test_names_are_html_escaped(templates):
    student = StudentContact(id=uuid.uuid4(), name="<b>Asha</b>")
    html = templates.render_reminder_email(student, fee(3), 3)
    assert "&lt;b&gt;Asha&lt;/b&gt;" in html


def test_fee_details_require_both_relations():
    from feeflow.core.exceptions import MissingRelatedData
    from feeflow.schemas.fee_due import FeeDueRecord, FeeDueWithRelations

    record = FeeDueRecord(
        id=uuid.uuid4(),
        student_id=uuid.uuid4(),
        fee_structure_id=uuid.uuid4(),
        due_date=days_from_today(3),
        amount=Decimal("100"),
        amount_remaining=Decimal("100"),
        status="pending",
    )
    with pytest.raises(MissingRelatedData):
        FeeDetails.from_relations(FeeDueWithRelations(fee_due=record))
