"""Legacy provider application and approval audit models."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from marketplace.db.base import Base


class ProviderApplication(Base):
    """
    Application submitted during phase 1 onboarding.

    Optional companion to a business profile: approval updates it when one
    exists and proceeds without it otherwise.
    """
    __tablename__ = "provider_applications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id = Column(String(36), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    application_status = Column(String(50), nullable=False, default="submitted")
    review_status = Column(String(50), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approval_notes = Column(Text, nullable=True)

    submitted_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    approvals = relationship("ApplicationApproval", back_populates="application")

    def __repr__(self) -> str:
        return f"<ProviderApplication {self.id} [{self.application_status}]>"


class ApplicationApproval(Base):
    """Traceability record of who approved an application and the token issued."""

    __tablename__ = "application_approvals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id = Column(String(36), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    application_id = Column(String(36), ForeignKey("provider_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    approved_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approval_token = Column(Text, nullable=False)
    token_expires_at = Column(DateTime, nullable=False)
    approval_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    application = relationship("ProviderApplication", back_populates="approvals")

    def __repr__(self) -> str:
        return f"<ApplicationApproval {self.application_id} by {self.approved_by}>"
