from enum import Enum


class RealtimeEvent(str, Enum):
    NEW_MESSAGE = "new-message"
    NEW_CUSTOMER_MESSAGE = "new-customer-message"
    CONVERSATION_UPDATED = "conversation-updated"
    AGENT_LOGGED_IN = "agent-logged-in"
    AGENT_LOGGED_OUT = "agent-logged-out"


class ConversationOutcome(str, Enum):
    PENDING = "pending"
    RESPONDED = "responded"
    CONFLICT = "conflict"
