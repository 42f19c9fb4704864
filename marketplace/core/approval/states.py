"""Business verification states and transitions.

State Machine Diagram:

    ┌──────────┐
    │ PENDING  │ ← Initial state (application submitted)
    └────┬─────┘
         │
         ├─────────────────────┐
         │                     │
    ┌────▼─────┐         ┌─────▼──────┐
    │ APPROVED │◄──┐     │  REJECTED  │ (terminal)
    └────┬─────┘   │     └────────────┘
         │         │
    ┌────▼─────┐   │
    │SUSPENDED │───┘ (re-approval)
    └──────────┘

REJECTED has no outgoing transitions; resetting it is an administrative
action outside this service.
"""

from enum import Enum
from typing import Set, Dict, NamedTuple


class VerificationStatus(str, Enum):
    """Values of ``business_profiles.verification_status``."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class TransitionRule(NamedTuple):
    """Defines a valid status transition."""
    from_state: VerificationStatus
    to_state: VerificationStatus
    action: str


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(VerificationStatus.PENDING, VerificationStatus.APPROVED, "approve"),
    TransitionRule(VerificationStatus.PENDING, VerificationStatus.REJECTED, "reject"),
    TransitionRule(VerificationStatus.APPROVED, VerificationStatus.SUSPENDED, "suspend"),
    TransitionRule(VerificationStatus.SUSPENDED, VerificationStatus.APPROVED, "reapprove"),
]

# Build lookup tables for efficient access
VALID_TRANSITIONS: Dict[VerificationStatus, Set[VerificationStatus]] = {}
for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_state, set()).add(rule.to_state)

TERMINAL_STATES: Set[VerificationStatus] = {
    status for status in VerificationStatus if status not in VALID_TRANSITIONS
}

# States the atomic activation accepts as its precondition
APPROVABLE_STATES: Set[VerificationStatus] = {
    rule.from_state for rule in TRANSITION_RULES
    if rule.to_state == VerificationStatus.APPROVED
}


def can_transition(current: VerificationStatus, requested: VerificationStatus) -> bool:
    """Check if ``current`` may move to ``requested``."""
    return requested in VALID_TRANSITIONS.get(current, set())


def parse_status(value) -> VerificationStatus:
    """Coerce a stored status value, raising ValueError for unknown values."""
    if isinstance(value, VerificationStatus):
        return value
    return VerificationStatus(str(value).lower())
