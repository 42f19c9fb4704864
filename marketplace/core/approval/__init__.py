"""Business approval module.

Implements the verification state machine, the best-effort step harness
and the approval orchestrator.
"""

from .states import VerificationStatus, VALID_TRANSITIONS, APPROVABLE_STATES, can_transition
from .machine import VerificationStateMachine
from .errors import (
    ApprovalError,
    ValidationError,
    AuthorizationError,
    NotFoundError,
    StateConflictError,
    DependencyError,
    MissingOwnerError,
    TokenIssuanceError,
)
from .steps import StepResult, StepError, run_step, run_async_step
from .service import ApprovalOrchestrator, ApprovalCommand, ApprovalOutcome

__all__ = [
    "VerificationStatus",
    "VALID_TRANSITIONS",
    "APPROVABLE_STATES",
    "can_transition",
    "VerificationStateMachine",
    "ApprovalError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "StateConflictError",
    "DependencyError",
    "MissingOwnerError",
    "TokenIssuanceError",
    "StepResult",
    "StepError",
    "run_step",
    "run_async_step",
    "ApprovalOrchestrator",
    "ApprovalCommand",
    "ApprovalOutcome",
]
