INBOX_CHANNEL = "inbox"


def conversation_channel(customer_id: int) -> str:
    return f"conversation:{customer_id}"
