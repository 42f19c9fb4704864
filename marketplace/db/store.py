"""Business store.

Thin data-access layer over a SQLAlchemy session exposing the operations
the approval orchestrator needs: point lookups, the atomic
activate-and-approve, and the record writes for the best-effort steps.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.approval.errors import DependencyError, NotFoundError, StateConflictError
from marketplace.core.approval.states import APPROVABLE_STATES, VerificationStatus
from marketplace.db.models import (
    User,
    BusinessProfile,
    BusinessMember,
    ProviderApplication,
    ApplicationApproval,
    BusinessSetupProgress,
)
from marketplace.db.models.progress import PHASE2_ENTRY_STEP

logger = logging.getLogger(__name__)

OWNER_ROLE = "owner"


def utc_now() -> datetime:
    """Current time in UTC, timezone-aware."""
    return datetime.now(timezone.utc)


def _db_time(value: datetime) -> datetime:
    # Columns are naive UTC
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class BusinessStore:
    """Store operations scoped to one database session."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_business(self, business_id: str) -> Optional[BusinessProfile]:
        """Fetch a business, taking the first row if the lookup is not unique."""
        rows = self.db.query(BusinessProfile).filter(
            BusinessProfile.id == business_id
        ).limit(2).all()

        if len(rows) > 1:
            logger.warning("Multiple business profiles match %s; using the first", business_id)
        return rows[0] if rows else None

    def get_latest_application(self, business_id: str) -> Optional[ProviderApplication]:
        return self.db.query(ProviderApplication).filter(
            ProviderApplication.business_id == business_id
        ).order_by(ProviderApplication.submitted_at.desc()).first()

    def get_owner_member(self, business_id: str) -> Optional[BusinessMember]:
        """Resolve the owner-role member of a business."""
        rows = self.db.query(BusinessMember).filter(
            BusinessMember.business_id == business_id,
            BusinessMember.role == OWNER_ROLE,
        ).order_by(BusinessMember.created_at.asc()).all()

        if len(rows) > 1:
            logger.warning(
                "Business %s has %d owner members; using the earliest", business_id, len(rows)
            )
        return rows[0] if rows else None

    def get_setup_progress(self, business_id: str) -> Optional[BusinessSetupProgress]:
        return self.db.query(BusinessSetupProgress).filter(
            BusinessSetupProgress.business_id == business_id
        ).first()

    # ------------------------------------------------------------------
    # Atomic activation
    # ------------------------------------------------------------------

    def approve_and_activate(
        self,
        business_id: str,
        admin_id: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Approve and activate a business in one transaction.

        The status precondition is part of the UPDATE's WHERE clause, so of
        two concurrent calls only one can match the row; the other sees the
        already-approved status and is refused.

        Returns:
            Activation result with ``committed=True``

        Raises:
            StateConflictError: Business is not pending or suspended
            NotFoundError: Business no longer exists
            DependencyError: The store failed for any other reason
        """
        now = utc_now()
        stamp = _db_time(now)
        approvable = [s.value for s in APPROVABLE_STATES]

        try:
            previous = self.db.query(BusinessProfile.verification_status).filter(
                BusinessProfile.id == business_id
            ).scalar()

            result = self.db.execute(
                update(BusinessProfile)
                .where(
                    BusinessProfile.id == business_id,
                    BusinessProfile.verification_status.in_(approvable),
                )
                .values(
                    verification_status=VerificationStatus.APPROVED.value,
                    is_active=True,
                    approved_at=stamp,
                    approved_by=admin_id,
                    approval_notes=notes,
                    updated_at=stamp,
                )
                .execution_options(synchronize_session="fetch")
            )

            if result.rowcount != 1:
                self.db.rollback()
                current = self.db.query(BusinessProfile.verification_status).filter(
                    BusinessProfile.id == business_id
                ).scalar()
                if current is None:
                    raise NotFoundError("Business profile not found", details=business_id)
                raise StateConflictError(
                    "Business is not in an approvable state",
                    details=f"verification_status is {current}",
                    current_status=current,
                )

            self.db.commit()
        except (StateConflictError, NotFoundError):
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Atomic activation failed for business %s", business_id)
            raise DependencyError("Failed to approve business profile", details=str(e))

        return {
            "committed": True,
            "business_id": business_id,
            "previous_status": previous,
            "verification_status": VerificationStatus.APPROVED.value,
            "is_active": True,
            "approved_at": now.isoformat(),
            "approved_by": admin_id,
        }

    # ------------------------------------------------------------------
    # Best-effort writes
    # ------------------------------------------------------------------

    def mark_application_approved(
        self,
        application: ProviderApplication,
        admin_id: str,
        notes: Optional[str] = None,
    ) -> ProviderApplication:
        now = _db_time(utc_now())
        application.application_status = "approved"
        application.review_status = "approved"
        application.reviewed_at = now
        application.reviewed_by = admin_id
        application.approval_notes = notes
        application.updated_at = now
        self.db.commit()
        return application

    def create_approval_record(
        self,
        *,
        business_id: str,
        application_id: str,
        admin_id: str,
        token: str,
        token_expires_at: datetime,
        notes: Optional[str] = None,
    ) -> ApplicationApproval:
        record = ApplicationApproval(
            business_id=business_id,
            application_id=application_id,
            approved_by=admin_id,
            approval_token=token,
            token_expires_at=_db_time(token_expires_at),
            approval_notes=notes,
        )
        self.db.add(record)
        self.db.commit()
        return record

    def complete_phase_one(self, business_id: str) -> BusinessSetupProgress:
        """Mark phase 1 done and move the business to the phase 2 entry step."""
        now = _db_time(utc_now())
        progress = self.get_setup_progress(business_id)
        if progress is None:
            progress = BusinessSetupProgress(business_id=business_id)
            self.db.add(progress)

        progress.phase_1_completed = True
        progress.phase_1_completed_at = now
        progress.current_step = PHASE2_ENTRY_STEP
        progress.updated_at = now
        self.db.commit()
        return progress
