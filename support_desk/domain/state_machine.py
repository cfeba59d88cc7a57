from support_desk.domain.enums import MessageStatus, TransitionAction
from support_desk.domain.exceptions import InvalidStatusTransition


class ConversationLifecycle:
    """Status machine for a conversation: pending -> assigned -> responded.

    A new customer message reopens the thread and clears ownership; a claim
    or a reply by the owner keeps it.
    """

    _allowed_transitions: dict[tuple[MessageStatus, TransitionAction], MessageStatus] = {
        (MessageStatus.PENDING, TransitionAction.CLAIM): MessageStatus.ASSIGNED,
        (MessageStatus.PENDING, TransitionAction.AGENT_REPLY): MessageStatus.RESPONDED,
        (MessageStatus.ASSIGNED, TransitionAction.AGENT_REPLY): MessageStatus.RESPONDED,
    }

    _entry_statuses: dict[TransitionAction, MessageStatus] = {
        TransitionAction.CUSTOMER_MESSAGE: MessageStatus.PENDING,
        TransitionAction.AGENT_REPLY: MessageStatus.RESPONDED,
    }

    @classmethod
    def transition(cls, current: MessageStatus, action: TransitionAction) -> MessageStatus:
        if action == TransitionAction.CUSTOMER_MESSAGE:
            return MessageStatus.PENDING
        if action == TransitionAction.CLAIM_CONFLICT:
            return current

        # Idempotent semantics for an owner that keeps replying.
        if current == MessageStatus.ASSIGNED and action == TransitionAction.CLAIM:
            return MessageStatus.ASSIGNED
        if current == MessageStatus.RESPONDED and action in (
            TransitionAction.CLAIM,
            TransitionAction.AGENT_REPLY,
        ):
            return MessageStatus.RESPONDED

        next_state = cls._allowed_transitions.get((current, action))
        if not next_state:
            raise InvalidStatusTransition(current=current, action=action)
        return next_state

    @classmethod
    def changes_for(cls, action: TransitionAction) -> dict[MessageStatus, MessageStatus]:
        """Statuses that actually move under ``action``, mapped to their target."""
        changes: dict[MessageStatus, MessageStatus] = {}
        for status in MessageStatus:
            try:
                target = cls.transition(status, action)
            except InvalidStatusTransition:
                continue
            if target != status:
                changes[status] = target
        return changes

    @classmethod
    def entry_status(cls, action: TransitionAction) -> MessageStatus:
        """Status a message is stored with when ``action`` inserts it."""
        status = cls._entry_statuses.get(action)
        if status is None:
            raise ValueError(f"Action '{action.value}' does not create a message.")
        return status

    @staticmethod
    def resets_ownership(action: TransitionAction) -> bool:
        return action == TransitionAction.CUSTOMER_MESSAGE

    @classmethod
    def outstanding_statuses(cls) -> frozenset[MessageStatus]:
        return frozenset(cls.changes_for(TransitionAction.AGENT_REPLY))

    @classmethod
    def is_awaiting_agent(cls, status: MessageStatus) -> bool:
        return status in cls.outstanding_statuses()
