"""Database models for the marketplace admin API."""

from marketplace.db.models.user import User
from marketplace.db.models.business import BusinessProfile, BusinessMember
from marketplace.db.models.application import ProviderApplication, ApplicationApproval
from marketplace.db.models.progress import BusinessSetupProgress

__all__ = [
    "User",
    "BusinessProfile",
    "BusinessMember",
    "ProviderApplication",
    "ApplicationApproval",
    "BusinessSetupProgress",
]
