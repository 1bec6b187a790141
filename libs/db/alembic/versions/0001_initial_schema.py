"""Initial schema: profiles, payments, payouts, goals, verification

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("account_type", sa.Enum("individual", "business", "nonprofit", "creator", name="accounttype", native_enum=False), nullable=True),
        sa.Column("role", sa.Enum("creator", "admin", name="profilerole", native_enum=False), nullable=False),
        sa.Column("small_icon", sa.String(length=64), nullable=True),
        sa.Column("medium_icon", sa.String(length=64), nullable=True),
        sa.Column("large_icon", sa.String(length=64), nullable=True),
        sa.Column("small_amount", sa.Integer(), server_default="50", nullable=False),
        sa.Column("medium_amount", sa.Integer(), server_default="100", nullable=False),
        sa.Column("large_amount", sa.Integer(), server_default="300", nullable=False),
        sa.Column("total_donations", sa.Integer(), server_default="0", nullable=False),
        sa.Column("available_balance", sa.Integer(), server_default="0", nullable=False),
        sa.Column("social_links", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=False),
        sa.Column("onboarding_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profiles_username", "profiles", ["username"], unique=True)

    op.create_table(
        "donor_visibility",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("show_top_donors", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("top_donors_count", sa.Integer(), server_default="5", nullable=False),
        sa.Column("hide_anonymous", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("creator_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.Enum("pending", "completed", "failed", name="paymentstatus", native_enum=False), nullable=False),
        sa.Column("payer_name", sa.String(length=255), nullable=True),
        sa.Column("payer_email", sa.String(length=255), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("payment_type", sa.String(length=32), nullable=False),
        sa.Column("external_reference", sa.String(length=255), nullable=True),
        sa.Column("stripe_session_id", sa.String(length=255), nullable=True),
        sa.Column("payment_amount", sa.Integer(), nullable=True),
        sa.Column("payment_currency", sa.String(length=3), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["creator_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payments_creator_id", "payments", ["creator_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_external_reference", "payments", ["external_reference"])
    op.create_index("ix_payments_stripe_session_id", "payments", ["stripe_session_id"])

    op.create_table(
        "bank_accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("account_number", sa.String(length=34), nullable=False),
        sa.Column("bank_name", sa.String(length=255), nullable=False),
        sa.Column("swift_code", sa.String(length=11), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bank_accounts_user_id", "bank_accounts", ["user_id"])

    op.create_table(
        "payouts",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("bank_account_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("status", sa.Enum("pending", "completed", "rejected", name="payoutstatus", native_enum=False), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["bank_account_id"], ["bank_accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payouts_user_id", "payouts", ["user_id"])
    op.create_index("ix_payouts_status", "payouts", ["status"])

    op.create_table(
        "donation_goals",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_amount", sa.Integer(), nullable=False),
        sa.Column("current_amount", sa.Integer(), server_default="0", nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_donation_goals_user_id", "donation_goals", ["user_id"])

    op.create_table(
        "user_verifications",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("kyc_status", sa.Enum("not_started", "pending", "verified", "rejected", name="kycstatus", native_enum=False), nullable=False),
        sa.Column("kyc_reference", sa.String(length=255), nullable=True),
        sa.Column("kyc_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("phone_verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("phone_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "personal_data",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=255), nullable=False),
        sa.Column("postal_code", sa.String(length=16), nullable=False),
        sa.Column("country", sa.String(length=64), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=False),
        sa.Column("organization_name", sa.String(length=255), nullable=True),
        sa.Column("tax_id", sa.String(length=32), nullable=True),
        sa.Column("nonprofit_id", sa.String(length=32), nullable=True),
        sa.Column("mission_statement", sa.Text(), nullable=True),
        sa.Column("professional_category", sa.String(length=255), nullable=True),
        sa.Column("portfolio_url", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("personal_data")
    op.drop_table("user_verifications")
    op.drop_index("ix_donation_goals_user_id", table_name="donation_goals")
    op.drop_table("donation_goals")
    op.drop_index("ix_payouts_status", table_name="payouts")
    op.drop_index("ix_payouts_user_id", table_name="payouts")
    op.drop_table("payouts")
    op.drop_index("ix_bank_accounts_user_id", table_name="bank_accounts")
    op.drop_table("bank_accounts")
    op.drop_index("ix_payments_stripe_session_id", table_name="payments")
    op.drop_index("ix_payments_external_reference", table_name="payments")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_creator_id", table_name="payments")
    op.drop_table("payments")
    op.drop_table("donor_visibility")
    op.drop_index("ix_profiles_username", table_name="profiles")
    op.drop_table("profiles")
