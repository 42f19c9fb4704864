"""Initial schema: users, business profiles, members, applications, approvals, setup progress

Revision ID: 0001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all approval tables."""

    # --- users (no FK deps) ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # --- business_profiles (FK -> users) ---
    op.create_table(
        "business_profiles",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("verification_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("approved_by", sa.String(36), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_business_profiles"),
        sa.ForeignKeyConstraint(
            ["approved_by"],
            ["users.id"],
            name="fk_business_profiles_approved_by_users",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint(
            "verification_status IN ('pending', 'approved', 'rejected', 'suspended')",
            name="ck_business_profiles_verification_status",
        ),
    )
    op.create_index(
        "ix_business_profiles_verification_status", "business_profiles", ["verification_status"]
    )

    # --- business_members (FK -> business_profiles, users) ---
    op.create_table(
        "business_members",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("business_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="owner"),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_business_members"),
        sa.ForeignKeyConstraint(
            ["business_id"],
            ["business_profiles.id"],
            name="fk_business_members_business_id_business_profiles",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_business_members_user_id_users",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_business_members_business_id", "business_members", ["business_id"])
    op.create_index("ix_business_members_user_id", "business_members", ["user_id"])

    # --- provider_applications (FK -> business_profiles, users) ---
    op.create_table(
        "provider_applications",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("business_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("application_status", sa.String(50), nullable=False, server_default="submitted"),
        sa.Column("review_status", sa.String(50), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("reviewed_by", sa.String(36), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_provider_applications"),
        sa.ForeignKeyConstraint(
            ["business_id"],
            ["business_profiles.id"],
            name="fk_provider_applications_business_id_business_profiles",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_provider_applications_user_id_users",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["reviewed_by"],
            ["users.id"],
            name="fk_provider_applications_reviewed_by_users",
            ondelete="SET NULL",
        ),
    )
    op.create_index(
        "ix_provider_applications_business_id", "provider_applications", ["business_id"]
    )
    op.create_index(
        "ix_provider_applications_submitted_at", "provider_applications", ["submitted_at"]
    )

    # --- application_approvals (FK -> business_profiles, provider_applications, users) ---
    op.create_table(
        "application_approvals",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("business_id", sa.String(36), nullable=False),
        sa.Column("application_id", sa.String(36), nullable=False),
        sa.Column("approved_by", sa.String(36), nullable=True),
        sa.Column("approval_token", sa.Text(), nullable=False),
        sa.Column("token_expires_at", sa.DateTime(), nullable=False),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_application_approvals"),
        sa.ForeignKeyConstraint(
            ["business_id"],
            ["business_profiles.id"],
            name="fk_application_approvals_business_id_business_profiles",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["application_id"],
            ["provider_applications.id"],
            name="fk_application_approvals_application_id_provider_applications",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["approved_by"],
            ["users.id"],
            name="fk_application_approvals_approved_by_users",
            ondelete="SET NULL",
        ),
    )
    op.create_index(
        "ix_application_approvals_business_id", "application_approvals", ["business_id"]
    )
    op.create_index(
        "ix_application_approvals_application_id", "application_approvals", ["application_id"]
    )
    op.create_index(
        "ix_application_approvals_created_at", "application_approvals", ["created_at"]
    )

    # --- business_setup_progress (FK -> business_profiles) ---
    op.create_table(
        "business_setup_progress",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("business_id", sa.String(36), nullable=False),
        sa.Column("current_step", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("phase_1_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("phase_1_completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_business_setup_progress"),
        sa.UniqueConstraint("business_id", name="uq_business_setup_progress_business_id"),
        sa.ForeignKeyConstraint(
            ["business_id"],
            ["business_profiles.id"],
            name="fk_business_setup_progress_business_id_business_profiles",
            ondelete="CASCADE",
        ),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("business_setup_progress")
    op.drop_table("application_approvals")
    op.drop_table("provider_applications")
    op.drop_table("business_members")
    op.drop_table("business_profiles")
    op.drop_table("users")
