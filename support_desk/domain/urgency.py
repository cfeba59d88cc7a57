from support_desk.domain.enums import UrgencyLevel

URGENT_KEYWORDS: tuple[str, ...] = (
    "loan",
    "approval",
    "disbursed",
    "urgent",
    "help",
    "immediate",
    "rejected",
    "denied",
    "payment",
    "batch number",
    "validate",
    "review",
    "crb",
    "clearance",
    "pay",
)


def classify_urgency(text: str | None) -> UrgencyLevel:
    """Tag message text as high urgency when it mentions any urgent keyword.

    Matching is a case-insensitive substring test, so "Payments" and
    "REVIEWED" both count.
    """
    normalized = (text or "").lower()
    if any(keyword in normalized for keyword in URGENT_KEYWORDS):
        return UrgencyLevel.HIGH
    return UrgencyLevel.NORMAL
