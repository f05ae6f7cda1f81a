"""Initial waitlist schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates tables for:
- user_account: Waitlist accounts, one per case-insensitive email
- referral_event: Append-only referral ledger
- faucet_claim: Faucet disbursement attempts
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create waitlist tables."""

    # Accounts
    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(40), nullable=True),
        sa.Column("experience", sa.String(20), nullable=True),
        sa.Column("discord", sa.String(80), nullable=True),
        sa.Column("github", sa.String(120), nullable=True),
        sa.Column("country", sa.String(80), nullable=True),
        sa.Column("referral_code", sa.String(20), nullable=True),
        sa.Column("referred_by", sa.Integer(), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("turnstile_ok", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("utm", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["referred_by"], ["user_account.id"],
            name="user_account_referred_by_fk", ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "user_account_email_lower_uq", "user_account", [sa.text("lower(email)")], unique=True
    )
    op.create_index("user_account_referral_code_uq", "user_account", ["referral_code"], unique=True)
    op.create_index("user_account_referred_by_idx", "user_account", ["referred_by"], unique=False)

    # Referral ledger
    op.create_table(
        "referral_event",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("referrer_id", sa.Integer(), nullable=False),
        sa.Column("referee_id", sa.Integer(), nullable=False),
        sa.Column(
            "kind",
            sa.Enum("CLICK", "SIGNUP", "VERIFIED", name="referral_kind"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["referrer_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["referee_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.CheckConstraint("referrer_id <> referee_id", name="ref_event_no_self_referral"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ref_event_referrer_idx", "referral_event", ["referrer_id"], unique=False)
    op.create_index("ref_event_referee_idx", "referral_event", ["referee_id"], unique=False)
    op.create_index("ref_event_kind_idx", "referral_event", ["kind"], unique=False)
    op.create_index(
        "ref_event_referrer_referee_kind_uq",
        "referral_event",
        ["referrer_id", "referee_id", "kind"],
        unique=True,
    )

    # Faucet claims
    op.create_table(
        "faucet_claim",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("ss58_address", sa.String(64), nullable=False),
        sa.Column("ip_hash", sa.String(64), nullable=False),
        sa.Column("amount_qtr", sa.String(64), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "SENT", "REJECTED", name="faucet_status"),
            nullable=False,
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("tx_hash", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("faucet_claim_user_idx", "faucet_claim", ["user_id"], unique=False)
    op.create_index("faucet_claim_addr_idx", "faucet_claim", ["ss58_address"], unique=False)
    op.create_index("faucet_claim_status_idx", "faucet_claim", ["status"], unique=False)
    op.create_index("faucet_claim_ip_idx", "faucet_claim", ["ip_hash"], unique=False)
    op.create_index("faucet_claim_tx_idx", "faucet_claim", ["tx_hash"], unique=False)


def downgrade() -> None:
    """Drop waitlist tables."""
    op.drop_table("faucet_claim")
    op.drop_table("referral_event")
    op.drop_table("user_account")
    sa.Enum(name="faucet_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="referral_kind").drop(op.get_bind(), checkfirst=True)
