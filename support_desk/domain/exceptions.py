from support_desk.domain.enums import MessageStatus, TransitionAction


class InvalidStatusTransition(ValueError):
    def __init__(self, current: MessageStatus, action: TransitionAction) -> None:
        super().__init__(
            f"Cannot apply action '{action.value}' from status '{current.value}'."
        )
        self.current = current
        self.action = action
