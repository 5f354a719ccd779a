# feeflow/services/templates.py - Reminder and receipt content rendered with Jinja2
from datetime import date
from decimal import Decimal
from typing import Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from feeflow.core.config import settings
from feeflow.schemas.fee_due import FeeDetails, PaymentDetails, StudentContact


def _money(value, currency: str = "") -> str:
    return f"{currency}{Decimal(value or 0):,.2f}"


def _display_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def _plural_days(n: int) -> str:
    return f"{n} day" if n == 1 else f"{n} days"


def build_environment() -> Environment:
    env = Environment(
        loader=PackageLoader("feeflow", "templates"),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["money"] = _money
    env.filters["display_date"] = _display_date
    return env


def parent_greeting(student: StudentContact) -> str:
    if student.parent_name:
        return f"{student.parent_name} (Parent of {student.name})"
    return f"Parent of {student.name}"


class MessageTemplates:
    """Renders reminder and payment confirmation content for each recipient class"""

    def __init__(
        self,
        institute_name: Optional[str] = None,
        currency: Optional[str] = None,
        env: Optional[Environment] = None,
    ):
        self.institute_name = institute_name or settings.INSTITUTE_NAME
        self.currency = currency if currency is not None else settings.CURRENCY_SYMBOL
        self.env = env or build_environment()

    @staticmethod
    def reminder_subject(days_until_due: int) -> str:
        if days_until_due < 0:
            return "Fee Payment Overdue - Immediate Action Required"
        if days_until_due == 0:
            return "Fee Payment Due Today"
        return f"Fee Payment Reminder - Due in {_plural_days(days_until_due).title()}"

    @staticmethod
    def days_text(days_until_due: int, compact: bool = False) -> str:
        """Human phrase for the due state; compact is the SMS wording"""
        if days_until_due < 0:
            overdue = _plural_days(abs(days_until_due))
            return f"OVERDUE by {overdue}" if compact else f"{overdue} overdue"
        if days_until_due == 0:
            return "DUE TODAY" if compact else "due today"
        return f"due in {_plural_days(days_until_due)}"

    def render_reminder_email(
        self,
        student: StudentContact,
        fee: FeeDetails,
        days_until_due: int,
        for_parent: bool = False,
    ) -> str:
        return self.env.get_template("fee_reminder_email.html").render(
            **self._reminder_context(student, fee, days_until_due, for_parent, compact=False)
        )

    def render_reminder_sms(
        self,
        student: StudentContact,
        fee: FeeDetails,
        days_until_due: int,
        for_parent: bool = False,
    ) -> str:
        text = self.env.get_template("fee_reminder_sms.txt").render(
            **self._reminder_context(student, fee, days_until_due, for_parent, compact=True)
        )
        return " ".join(text.split())

    @staticmethod
    def payment_confirmation_subject() -> str:
        return "Payment Received - Receipt"

    def render_payment_confirmation(
        self,
        student: StudentContact,
        payment: PaymentDetails,
        for_parent: bool = False,
    ) -> str:
        return self.env.get_template("payment_confirmation_email.html").render(
            recipient_name=parent_greeting(student) if for_parent else student.name,
            student_name=student.name,
            for_parent=for_parent,
            payment=payment,
            currency=self.currency,
            institute_name=self.institute_name,
        )

    def _reminder_context(self, student, fee, days_until_due, for_parent, compact):
        return {
            "recipient_name": parent_greeting(student) if for_parent else student.name,
            "student_name": student.name,
            "for_parent": for_parent,
            "fee": fee,
            "is_overdue": days_until_due < 0,
            "days_text": self.days_text(days_until_due, compact=compact),
            "currency": self.currency,
            "institute_name": self.institute_name,
        }
