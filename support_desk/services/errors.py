class InvalidInputError(ValueError):
    """Missing or empty required input; raised before any write."""


class ConversationNotFoundError(LookupError):
    def __init__(self, customer_id: int) -> None:
        super().__init__(f"Conversation for customer '{customer_id}' not found")
        self.customer_id = customer_id


class MessageNotFoundError(LookupError):
    def __init__(self, message_id: int) -> None:
        super().__init__(f"Message '{message_id}' not found")
        self.message_id = message_id


class AgentNotFoundError(LookupError):
    def __init__(self, agent_id: int) -> None:
        super().__init__(f"Agent '{agent_id}' not found")
        self.agent_id = agent_id


class StoreFailureError(RuntimeError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"Store operation '{operation}' failed")
        self.operation = operation
