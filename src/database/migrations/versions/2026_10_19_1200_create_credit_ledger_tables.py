"""Create credit ledger tables

Revision ID: 3f2a9c1d7b40
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f2a9c1d7b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("locale", sa.String(), nullable=True),
        sa.Column("stripe_customer_id", sa.String(), nullable=True),
        sa.Column("referral_code", sa.String(length=32), nullable=True),
        sa.Column("referred_by_id", sa.Uuid(), nullable=True),
        sa.Column(
            "referral_qualified", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "referral_credits_awarded",
            sa.BigInteger(),
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "auto_renewal_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("auto_renewal_threshold", sa.BigInteger(), nullable=True),
        sa.Column("auto_renewal_bundle_id", sa.String(), nullable=True),
        sa.Column(
            "auto_renewal_attempts", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "last_auto_renewal_attempt_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["referred_by_id"],
            ["users.id"],
            name="fk_users_referred_by_id_users",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("referral_code", name="uq_users_referral_code"),
    )

    op.create_table(
        "credit_buckets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("remaining", sa.BigInteger(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("provenance", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "remaining >= 0", name="ck_credit_buckets_remaining_non_negative"
        ),
        sa.CheckConstraint(
            "remaining <= amount", name="ck_credit_buckets_remaining_within_amount"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_credit_buckets_user_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_credit_buckets"),
        sa.UniqueConstraint("provenance", name="uq_credit_buckets_provenance"),
    )
    op.create_index(
        "ix_credit_buckets_user_expiry",
        "credit_buckets",
        ["user_id", "expires_at"],
        unique=False,
    )

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=True),
        sa.Column("provenance", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("model_id", sa.String(), nullable=True),
        sa.Column("prompt_length", sa.String(), nullable=True),
        sa.Column("item_type", sa.String(), nullable=True),
        sa.Column("item_id", sa.String(), nullable=True),
        sa.Column("creator_id", sa.Uuid(), nullable=True),
        sa.Column("bucket_count", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_credit_transactions_user_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["creator_id"],
            ["users.id"],
            name="fk_credit_transactions_creator_id_users",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_credit_transactions"),
        sa.UniqueConstraint("provenance", name="uq_credit_transactions_provenance"),
    )
    op.create_index(
        "ix_credit_transactions_user_created",
        "credit_transactions",
        ["user_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_credit_transactions_source_created",
        "credit_transactions",
        ["source", "created_at"],
        unique=False,
    )

    op.create_table(
        "referrals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("referrer_id", sa.Uuid(), nullable=False),
        sa.Column("referred_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column(
            "credits_awarded", sa.BigInteger(), nullable=False, server_default="0"
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["referrer_id"],
            ["users.id"],
            name="fk_referrals_referrer_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["referred_id"],
            ["users.id"],
            name="fk_referrals_referred_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_referrals"),
        sa.UniqueConstraint("referred_id", name="uq_referrals_referred_id"),
    )
    op.create_index(
        "ix_referrals_referrer_id", "referrals", ["referrer_id"], unique=False
    )

    op.create_table(
        "auto_renewal_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("bundle_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False, comment="Cents"),
        sa.Column("payment_intent_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_auto_renewal_logs_user_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_auto_renewal_logs"),
        sa.UniqueConstraint(
            "payment_intent_id", name="uq_auto_renewal_logs_payment_intent_id"
        ),
    )
    op.create_index(
        "ix_auto_renewal_logs_user_id", "auto_renewal_logs", ["user_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_auto_renewal_logs_user_id", table_name="auto_renewal_logs")
    op.drop_table("auto_renewal_logs")
    op.drop_index("ix_referrals_referrer_id", table_name="referrals")
    op.drop_table("referrals")
    op.drop_index(
        "ix_credit_transactions_source_created", table_name="credit_transactions"
    )
    op.drop_index(
        "ix_credit_transactions_user_created", table_name="credit_transactions"
    )
    op.drop_table("credit_transactions")
    op.drop_index("ix_credit_buckets_user_expiry", table_name="credit_buckets")
    op.drop_table("credit_buckets")
    op.drop_table("users")
