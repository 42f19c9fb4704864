import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Integer

from marketplace.db.base import Base

# First step of phase 2 onboarding
PHASE2_ENTRY_STEP = 3


class BusinessSetupProgress(Base):
    """Which onboarding phase and step a business has reached."""

    __tablename__ = "business_setup_progress"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id = Column(String(36), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    current_step = Column(Integer, nullable=False, default=1)
    phase_1_completed = Column(Boolean, nullable=False, default=False)
    phase_1_completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<BusinessSetupProgress {self.business_id} step={self.current_step}>"
