"""Verification state machine.

Pure decision logic over a business's current status. The store's atomic
activation re-checks the same precondition inside its transaction, so a
check that passes here can still be refused there under concurrency.
"""

from typing import Optional

from .errors import StateConflictError
from .states import (
    VerificationStatus,
    VALID_TRANSITIONS,
    TERMINAL_STATES,
    can_transition,
    parse_status,
)


class VerificationStateMachine:
    """Wraps a business's status and validates requested transitions."""

    def __init__(self, business_id: str, current_state):
        self.business_id = business_id
        try:
            self._state: Optional[VerificationStatus] = parse_status(current_state)
        except ValueError:
            self._state = None
        self._raw_state = current_state

    @property
    def state(self) -> Optional[VerificationStatus]:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def can_transition_to(self, requested: VerificationStatus) -> bool:
        if self._state is None:
            return False
        return can_transition(self._state, requested)

    def get_available_targets(self) -> list[VerificationStatus]:
        if self._state is None:
            return []
        return sorted(VALID_TRANSITIONS.get(self._state, set()), key=lambda s: s.value)

    def ensure_can_transition_to(self, requested: VerificationStatus) -> None:
        """
        Validate a transition without performing it.

        Raises:
            StateConflictError: If the transition is not allowed from the
                current state (including an unrecognised stored value)
        """
        if self.can_transition_to(requested):
            return

        current = self._state.value if self._state else str(self._raw_state)
        raise StateConflictError(
            f"Business cannot move from {current} to {requested.value}",
            details=f"Business {self.business_id} is {current}",
            current_status=current,
        )
