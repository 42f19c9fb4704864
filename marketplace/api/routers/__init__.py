"""API routers for the marketplace admin API."""

from marketplace.api.routers import approvals, onboarding, health

__all__ = ["approvals", "onboarding", "health"]
