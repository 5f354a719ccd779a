# feeflow/schemas/notification.py - Delivery outcomes reported by the dispatcher
from pydantic import BaseModel
from typing import Dict, Literal, Optional

Channel = Literal["student_email", "student_sms", "parent_email", "parent_sms"]


class GatewayResponse(BaseModel):
    """What a mail or SMS provider said about one message"""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class ChannelOutcome(BaseModel):
    channel: Channel
    recipient: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    timed_out: bool = False


class DeliveryResult(BaseModel):
    """Per-channel outcomes of one logical send; channels without a contact are absent"""
    outcomes: Dict[str, ChannelOutcome] = {}

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def any_success(self) -> bool:
        return any(o.success for o in self.outcomes.values())

    @property
    def failed_channels(self) -> list:
        return [name for name, o in self.outcomes.items() if not o.success]
