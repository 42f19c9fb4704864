"""Factory functions for creating test database records.

Each factory creates a model instance, adds it to the session, and flushes
so that defaults (id, created_at, etc.) are populated. Tests that exercise
the store should commit after seeding: the store rolls back on refusal,
which would discard anything only flushed.

Usage::

    from tests.factories import create_admin, create_business, create_owner_member

    def test_something(db_session):
        admin = create_admin(db_session)
        business = create_business(db_session, verification_status="suspended")
        create_owner_member(db_session, business=business)
        db_session.commit()
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.db.models import (
    BusinessMember,
    BusinessProfile,
    BusinessSetupProgress,
    ProviderApplication,
    User,
)


_counter = 0


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def create_user(
    session: Session,
    *,
    email: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: str = "Tester",
    is_active: bool = True,
    is_admin: bool = False,
) -> User:
    n = _next_id()
    user = User(
        email=email or f"user{n}@example.com",
        first_name=first_name or f"User{n}",
        last_name=last_name,
        is_active=is_active,
        is_admin=is_admin,
    )
    session.add(user)
    session.flush()
    return user


def create_admin(session: Session, **kwargs) -> User:
    kwargs.setdefault("is_admin", True)
    return create_user(session, **kwargs)


# ---------------------------------------------------------------------------
# Businesses
# ---------------------------------------------------------------------------


def create_business(
    session: Session,
    *,
    business_name: Optional[str] = None,
    contact_email: Optional[str] = None,
    verification_status: str = "pending",
    is_active: bool = False,
) -> BusinessProfile:
    n = _next_id()
    business = BusinessProfile(
        business_name=business_name or f"Test Business {n}",
        contact_email=contact_email,
        verification_status=verification_status,
        is_active=is_active,
    )
    session.add(business)
    session.flush()
    return business


def create_owner_member(
    session: Session,
    *,
    business: BusinessProfile,
    user: Optional[User] = None,
    email: Optional[str] = None,
    first_name: Optional[str] = None,
    role: str = "owner",
    created_at: Optional[datetime] = None,
) -> BusinessMember:
    if user is None:
        user = create_user(session)
    member = BusinessMember(
        business_id=business.id,
        user_id=user.id,
        role=role,
        email=email,
        first_name=first_name,
        created_at=created_at or datetime.utcnow(),
    )
    session.add(member)
    session.flush()
    return member


def create_application(
    session: Session,
    *,
    business: BusinessProfile,
    user: Optional[User] = None,
    application_status: str = "submitted",
    submitted_at: Optional[datetime] = None,
) -> ProviderApplication:
    application = ProviderApplication(
        business_id=business.id,
        user_id=user.id if user else None,
        application_status=application_status,
        submitted_at=submitted_at or datetime.utcnow(),
    )
    session.add(application)
    session.flush()
    return application


def create_setup_progress(
    session: Session,
    *,
    business: BusinessProfile,
    current_step: int = 2,
) -> BusinessSetupProgress:
    progress = BusinessSetupProgress(business_id=business.id, current_step=current_step)
    session.add(progress)
    session.flush()
    return progress
