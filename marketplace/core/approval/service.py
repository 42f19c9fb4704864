"""Business approval orchestrator.

Sequences one approval request:

1. validate input and authorize the acting admin
2. load the business and check the requested transition
3. resolve the legacy application (optional)
4. atomic activate-and-approve in the store (the only fatal side effect)
5. update the legacy application (best-effort)
6. resolve the owner (required for a token, not for success)
7. issue the phase 2 capability token
8. write the approval record (best-effort, needs an application)
9. advance setup progress (best-effort)
10. send the approval email (best-effort, optional)

Steps 1-4 may raise ``ApprovalError``; nothing has been written when they
do. Everything after step 4 is captured as a ``StepResult`` and reported in
the outcome.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError

from marketplace.core.logger import redact_token
from marketplace.core.tokens import CapabilityTokenCodec
from marketplace.db.models import BusinessProfile, BusinessMember, ProviderApplication, User
from marketplace.services.notifications import ApprovalNotifier, EmailStatus, resolve_recipient

from .errors import (
    AuthorizationError,
    DependencyError,
    ApprovalError,
    MissingOwnerError,
    NotFoundError,
    TokenIssuanceError,
    ValidationError,
)
from .machine import VerificationStateMachine
from .states import VerificationStatus
from .steps import StepError, StepResult, run_step, run_async_step

if TYPE_CHECKING:
    from marketplace.db.store import BusinessStore

logger = logging.getLogger(__name__)


@dataclass
class ApprovalCommand:
    """Input of one approval request."""
    business_id: Optional[str]
    admin_user_id: Optional[str]
    approval_notes: Optional[str] = None
    send_email: bool = True


@dataclass
class ApprovalOutcome:
    """Aggregated result of an approval whose activation committed."""
    activation: Dict[str, Any]
    approved_at: str
    approved_by: str
    email_status: EmailStatus
    steps: List[StepResult] = field(default_factory=list)
    approval_token: Optional[str] = None
    approval_url: Optional[str] = None
    token_expires_at: Optional[int] = None
    token_error: Optional[ApprovalError] = None

    @property
    def message(self) -> str:
        if self.token_error:
            return "Application approved, but no onboarding link could be generated"
        return "Application approved successfully"

    @property
    def degraded_steps(self) -> List[str]:
        return [step.name for step in self.steps if not step.ok]

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": True,
            "message": self.message,
            "activation": self.activation,
            "emailStatus": self.email_status.to_dict(),
            "approvedAt": self.approved_at,
            "approvedBy": self.approved_by,
            "steps": [step.to_dict() for step in self.steps],
        }
        if self.approval_token:
            body["approvalToken"] = self.approval_token
            body["approvalUrl"] = self.approval_url
        if self.token_error:
            body["tokenError"] = {
                "type": self.token_error.__class__.__name__,
                "message": self.token_error.message,
            }
            if self.token_error.details:
                body["tokenError"]["details"] = self.token_error.details
        return body


class ApprovalOrchestrator:
    """
    Approves a pending (or suspended) business and hands its owner a
    phase 2 onboarding link.
    """

    def __init__(
        self,
        store: "BusinessStore",
        codec: CapabilityTokenCodec,
        notifier: ApprovalNotifier,
    ):
        self.store = store
        self.codec = codec
        self.notifier = notifier

    async def approve(self, command: ApprovalCommand) -> ApprovalOutcome:
        """
        Run the approval sequence.

        Raises:
            ValidationError: businessId or adminUserId missing
            AuthorizationError: admin cannot be resolved or is not an admin
            NotFoundError: business does not exist
            StateConflictError: business is not pending or suspended
            DependencyError: the store failed before or during activation
        """
        business_id, admin_id = self._validate(command)
        notes = command.approval_notes

        self._authorize(admin_id)
        business = self._load_business(business_id)

        VerificationStateMachine(business.id, business.verification_status).ensure_can_transition_to(
            VerificationStatus.APPROVED
        )

        steps: List[StepResult] = []
        lookup = run_step(
            "resolve_application", self.store.get_latest_application, business_id,
            on_error=self._rollback,
        )
        steps.append(lookup)
        application: Optional[ProviderApplication] = lookup.value
        application_id = application.id if application is not None else None

        # Only fatal side effect. Nothing below may abort the request.
        activation = self.store.approve_and_activate(business_id, admin_id, notes)
        logger.info("Business %s approved by %s", business_id, admin_id)

        if application is not None:
            steps.append(run_step(
                "update_application", self.store.mark_application_approved,
                application, admin_id, notes,
                on_error=self._rollback,
            ))
        else:
            steps.append(StepResult.skip("update_application", "No application on file"))

        outcome = ApprovalOutcome(
            activation=activation,
            approved_at=activation["approved_at"],
            approved_by=admin_id,
            email_status=EmailStatus(sent=False),
            steps=steps,
        )

        owner = self._resolve_owner(business_id, outcome)
        if owner is not None:
            self._issue_token(business_id, owner, application_id, outcome)

        if application_id is not None and outcome.approval_token:
            steps.append(run_step(
                "create_approval_record", self.store.create_approval_record,
                business_id=business_id,
                application_id=application_id,
                admin_id=admin_id,
                token=outcome.approval_token,
                token_expires_at=datetime.fromtimestamp(outcome.token_expires_at / 1000, tz=timezone.utc),
                notes=notes,
                on_error=self._rollback,
            ))
        else:
            steps.append(StepResult.skip(
                "create_approval_record",
                "No application on file" if application_id is None else "No token issued",
            ))

        steps.append(run_step(
            "update_setup_progress", self.store.complete_phase_one, business_id,
            on_error=self._rollback,
        ))

        if command.send_email:
            notify = await run_async_step(
                "send_notification", self._notify, business, owner, outcome.approval_url,
            )
            steps.append(notify)
            if notify.ok:
                outcome.email_status = notify.value
                if notify.value.error:
                    notify.ok = False
                    notify.error = StepError(
                        step="send_notification", type="EmailDeliveryError", message=notify.value.error,
                    )
            else:
                outcome.email_status = EmailStatus(sent=False, error=notify.error.message)
        else:
            steps.append(StepResult.skip("send_notification", "Email not requested"))

        if outcome.degraded_steps:
            logger.warning(
                "Business %s approved with degraded steps: %s",
                business_id, ", ".join(outcome.degraded_steps),
            )
        return outcome

    # ------------------------------------------------------------------
    # Pre-activation checks
    # ------------------------------------------------------------------

    def _validate(self, command: ApprovalCommand) -> tuple[str, str]:
        business_id = (command.business_id or "").strip()
        admin_id = (command.admin_user_id or "").strip()
        if not business_id or not admin_id:
            logger.error("Missing required fields: businessId=%r adminUserId=%r",
                         command.business_id, command.admin_user_id)
            raise ValidationError("Missing businessId or adminUserId")
        return business_id, admin_id

    def _authorize(self, admin_id: str) -> User:
        try:
            admin = self.store.get_user(admin_id)
        except SQLAlchemyError as e:
            self._rollback()
            raise DependencyError("Failed to verify admin user", details=str(e))

        if admin is None or not admin.is_active or not admin.is_admin:
            logger.warning("Rejected approval by unknown or non-admin user %s", admin_id)
            raise AuthorizationError("Invalid admin user")
        return admin

    def _load_business(self, business_id: str) -> BusinessProfile:
        try:
            business = self.store.get_business(business_id)
        except SQLAlchemyError as e:
            self._rollback()
            raise DependencyError("Failed to load business profile", details=str(e))

        if business is None:
            raise NotFoundError("Business profile not found", details=business_id)
        return business

    # ------------------------------------------------------------------
    # Post-activation steps
    # ------------------------------------------------------------------

    def _resolve_owner(self, business_id: str, outcome: ApprovalOutcome) -> Optional[BusinessMember]:
        result = run_step(
            "resolve_owner", self.store.get_owner_member, business_id, on_error=self._rollback,
        )
        if result.ok and result.value is not None:
            outcome.steps.append(result)
            return result.value

        if result.ok:
            error = MissingOwnerError(
                "No owner found for business",
                details="Cannot generate approval token without an owner user ID",
            )
            result = StepResult.failure("resolve_owner", StepError.from_exception("resolve_owner", error))
        else:
            error = MissingOwnerError("Owner lookup failed", details=result.error.message)

        logger.error("Business %s approved without onboarding link: %s", business_id, error.message)
        outcome.steps.append(result)
        outcome.token_error = error
        return None

    def _issue_token(
        self,
        business_id: str,
        owner: BusinessMember,
        application_id: Optional[str],
        outcome: ApprovalOutcome,
    ) -> None:
        application_id = application_id or placeholder_application_id(business_id)

        def issue():
            claims = self.codec.new_claims(business_id, owner.user_id, application_id)
            token = self.codec.issue(claims)
            return claims, token, self.codec.build_url(token)

        result = run_step("issue_token", issue)
        outcome.steps.append(result)
        if result.ok:
            claims, token, url = result.value
            outcome.approval_token = token
            outcome.approval_url = url
            outcome.token_expires_at = claims.expires_at
            result.value = None  # keep the token out of step reporting
            logger.info("Issued phase 2 link %s", redact_token(url))
        else:
            logger.error("Business %s approved without onboarding link: %s", business_id, result.error.message)
            outcome.token_error = TokenIssuanceError(
                "Approval token could not be issued", details=result.error.message,
            )

    async def _notify(
        self,
        business: BusinessProfile,
        owner: Optional[BusinessMember],
        approval_url: Optional[str],
    ) -> EmailStatus:
        owner_user = None
        if owner is not None:
            try:
                owner_user = self.store.get_user(owner.user_id)
            except SQLAlchemyError as e:
                self._rollback()
                logger.warning("Could not load owner user %s: %s", owner.user_id, e)

        recipient = resolve_recipient(business, owner, owner_user)
        return await self.notifier.send_approval_email(
            recipient, business.business_name, approval_url,
        )

    def _rollback(self) -> None:
        self.store.db.rollback()


def placeholder_application_id(business_id: str) -> str:
    """Application id used in tokens for businesses without an application."""
    return f"business-{business_id}"

