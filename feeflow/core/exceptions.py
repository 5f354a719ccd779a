# feeflow/core/exceptions.py - Domain errors raised by the fee-due core
from decimal import Decimal


class FeeFlowError(Exception):
    """Base class for fee-due errors"""


class FeeDueNotFound(FeeFlowError):
    def __init__(self, fee_due_id):
        self.fee_due_id = fee_due_id
        super().__init__(f"Fee due {fee_due_id} not found")


class MissingRelatedData(FeeFlowError):
    """Fee-due has no student or no fee structure attached"""

    def __init__(self, fee_due_id):
        self.fee_due_id = fee_due_id
        super().__init__(f"Missing student or fee structure data for fee due {fee_due_id}")


class PaymentExceedsBalance(FeeFlowError):
    def __init__(self, amount: Decimal, remaining: Decimal):
        self.amount = amount
        self.remaining = remaining
        super().__init__(f"Payment of {amount} exceeds remaining balance {remaining}")


class DeliveryError(FeeFlowError):
    """A mail or SMS provider refused or failed a message"""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"{channel} delivery failed: {message}")


class PaymentNotFound(FeeFlowError):
    def __init__(self, payment_id):
        self.payment_id = payment_id
        super().__init__(f"Payment {payment_id} not found")
