# feeflow/models/__init__.py - Import all models so SQLAlchemy can discover them

from feeflow.models.base import Base

from feeflow.models.student import Student
from feeflow.models.fee import FeeStructure
from feeflow.models.payment import Payment
from feeflow.models.fee_due import FeeDue, FEE_DUE_STATUSES, REMINDER_STATUSES

__all__ = [
    "Base",
    "Student",
    "FeeStructure",
    "Payment",
    "FeeDue",
    "FEE_DUE_STATUSES",
    "REMINDER_STATUSES",
]
