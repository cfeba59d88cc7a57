import pytest

from support_desk.domain.enums import MessageStatus, TransitionAction
from support_desk.domain.exceptions import InvalidStatusTransition
from support_desk.domain.state_machine import ConversationLifecycle


def test_pending_to_assigned_on_claim() -> None:
    next_state = ConversationLifecycle.transition(
        MessageStatus.PENDING, TransitionAction.CLAIM
    )
    assert next_state == MessageStatus.ASSIGNED


def test_reply_resolves_pending_and_assigned() -> None:
    for current in (MessageStatus.PENDING, MessageStatus.ASSIGNED):
        next_state = ConversationLifecycle.transition(current, TransitionAction.AGENT_REPLY)
        assert next_state == MessageStatus.RESPONDED


def test_customer_message_always_reopens() -> None:
    for current in MessageStatus:
        next_state = ConversationLifecycle.transition(
            current, TransitionAction.CUSTOMER_MESSAGE
        )
        assert next_state == MessageStatus.PENDING


def test_claim_conflict_changes_nothing() -> None:
    for current in MessageStatus:
        assert (
            ConversationLifecycle.transition(current, TransitionAction.CLAIM_CONFLICT)
            == current
        )


def test_idempotent_claim_and_reply_by_owner() -> None:
    assert (
        ConversationLifecycle.transition(MessageStatus.ASSIGNED, TransitionAction.CLAIM)
        == MessageStatus.ASSIGNED
    )
    assert (
        ConversationLifecycle.transition(MessageStatus.RESPONDED, TransitionAction.CLAIM)
        == MessageStatus.RESPONDED
    )
    assert (
        ConversationLifecycle.transition(
            MessageStatus.RESPONDED, TransitionAction.AGENT_REPLY
        )
        == MessageStatus.RESPONDED
    )


def test_every_status_accepts_every_action() -> None:
    for current in MessageStatus:
        for action in TransitionAction:
            assert ConversationLifecycle.transition(current, action) in MessageStatus


def test_invalid_transition_message() -> None:
    error = InvalidStatusTransition(
        current=MessageStatus.RESPONDED, action=TransitionAction.CLAIM
    )
    assert "claim" in str(error)
    assert error.current == MessageStatus.RESPONDED


def test_changes_for_only_lists_moving_statuses() -> None:
    assert ConversationLifecycle.changes_for(TransitionAction.CLAIM) == {
        MessageStatus.PENDING: MessageStatus.ASSIGNED
    }
    assert ConversationLifecycle.changes_for(TransitionAction.CLAIM_CONFLICT) == {}


def test_entry_statuses() -> None:
    assert (
        ConversationLifecycle.entry_status(TransitionAction.CUSTOMER_MESSAGE)
        == MessageStatus.PENDING
    )
    assert (
        ConversationLifecycle.entry_status(TransitionAction.AGENT_REPLY)
        == MessageStatus.RESPONDED
    )
    with pytest.raises(ValueError):
        ConversationLifecycle.entry_status(TransitionAction.CLAIM)


def test_outstanding_statuses_and_ownership_reset() -> None:
    assert ConversationLifecycle.outstanding_statuses() == frozenset(
        {MessageStatus.PENDING, MessageStatus.ASSIGNED}
    )
    assert ConversationLifecycle.is_awaiting_agent(MessageStatus.ASSIGNED)
    assert not ConversationLifecycle.is_awaiting_agent(MessageStatus.RESPONDED)
    assert ConversationLifecycle.resets_ownership(TransitionAction.CUSTOMER_MESSAGE)
    assert not ConversationLifecycle.resets_ownership(TransitionAction.AGENT_REPLY)
