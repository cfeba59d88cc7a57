from enum import Enum


class MessageStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    RESPONDED = "responded"


class UrgencyLevel(str, Enum):
    NORMAL = "normal"
    HIGH = "high"


class TransitionAction(str, Enum):
    CUSTOMER_MESSAGE = "customer_message"
    CLAIM = "claim"
    AGENT_REPLY = "agent_reply"
    CLAIM_CONFLICT = "claim_conflict"


class ReplyStatus(str, Enum):
    OK = "ok"
    CONFLICT = "conflict"
