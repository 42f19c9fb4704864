"""Business profile and membership models."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship

from marketplace.db.base import Base


class BusinessProfile(Base):
    """
    A business on the marketplace.

    ``verification_status`` only becomes ``approved`` through
    ``BusinessStore.approve_and_activate``.
    """
    __tablename__ = "business_profiles"
    __table_args__ = (
        CheckConstraint(
            "verification_status IN ('pending', 'approved', 'rejected', 'suspended')",
            name="ck_business_profiles_verification_status",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    verification_status = Column(String(20), nullable=False, default="pending", index=True)
    is_active = Column(Boolean, nullable=False, default=False)

    # Activation tracking
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approval_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = relationship("BusinessMember", back_populates="business", cascade="all, delete-orphan")
    approver = relationship("User", foreign_keys=[approved_by])

    def __repr__(self) -> str:
        return f"<BusinessProfile {self.business_name} [{self.verification_status}]>"


class BusinessMember(Base):
    """
    A user's membership in a business.

    The member with ``role == "owner"`` is the subject of the phase 2
    capability token. ``email`` is the contact address on file for the
    business, which may differ from the identity-provider address.
    """
    __tablename__ = "business_members"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id = Column(String(36), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False, default="owner")
    email = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    business = relationship("BusinessProfile", back_populates="members")
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<BusinessMember {self.user_id}@{self.business_id} [{self.role}]>"
