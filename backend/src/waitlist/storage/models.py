"""Database models - accounts, referral ledger and faucet claims."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class ReferralKind(str, Enum):
    """Referral lifecycle event kinds."""
    CLICK = "CLICK"        # Reserved, never emitted
    SIGNUP = "SIGNUP"      # Referee joined with the referrer's code
    VERIFIED = "VERIFIED"  # Referee confirmed their email


class FaucetStatus(str, Enum):
    """Faucet claim states."""
    PENDING = "PENDING"
    SENT = "SENT"
    REJECTED = "REJECTED"


class UserAccount(Base):
    """Waitlist account keyed by case-insensitive email."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Stored lowercased; uniqueness is enforced on lower(email) below
    email: Mapped[str] = mapped_column(String(320), nullable=False)

    # Profile
    role: Mapped[str | None] = mapped_column(String(40), nullable=True)
    experience: Mapped[str | None] = mapped_column(String(20), nullable=True)
    discord: Mapped[str | None] = mapped_column(String(80), nullable=True)
    github: Mapped[str | None] = mapped_column(String(120), nullable=True)
    country: Mapped[str | None] = mapped_column(String(80), nullable=True)

    # Nullable until minted; the unique index allows many NULLs
    referral_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    referred_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id", name="user_account_referred_by_fk", ondelete="SET NULL"),
        nullable=True,
    )

    # Flags
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    turnstile_ok: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # UTM attribution: source / medium / campaign / content / term
    utm: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("user_account_referral_code_uq", "referral_code", unique=True),
        Index("user_account_referred_by_idx", "referred_by"),
    )

    def __repr__(self):
        return f"<UserAccount(id={self.id}, email={self.email}, code={self.referral_code})>"


class ReferralEvent(Base):
    """Immutable referral ledger row."""

    __tablename__ = "referral_event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    referrer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    )
    referee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[ReferralKind] = mapped_column(
        SQLEnum(ReferralKind, name="referral_kind"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ref_event_referrer_idx", "referrer_id"),
        Index("ref_event_referee_idx", "referee_id"),
        Index("ref_event_kind_idx", "kind"),
        Index("ref_event_referrer_referee_kind_uq", "referrer_id", "referee_id", "kind", unique=True),
        CheckConstraint("referrer_id <> referee_id", name="ref_event_no_self_referral"),
    )

    def __repr__(self):
        return f"<ReferralEvent({self.kind.value}: {self.referrer_id} -> {self.referee_id})>"


class FaucetClaim(Base):
    """Faucet disbursement attempt."""

    __tablename__ = "faucet_claim"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user_account.id", ondelete="SET NULL"), nullable=True
    )
    ss58_address: Mapped[str] = mapped_column(String(64), nullable=False)

    # Salted hash, never the raw IP
    ip_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # 12 decimals, kept as text for exactness (e.g. "100.000000000000")
    amount_qtr: Mapped[str] = mapped_column(String(64), nullable=False)

    status: Mapped[FaucetStatus] = mapped_column(
        SQLEnum(FaucetStatus, name="faucet_status"), default=FaucetStatus.PENDING, nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    tx_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("faucet_claim_user_idx", "user_id"),
        Index("faucet_claim_addr_idx", "ss58_address"),
        Index("faucet_claim_status_idx", "status"),
        Index("faucet_claim_ip_idx", "ip_hash"),
        Index("faucet_claim_tx_idx", "tx_hash"),
    )

    def __repr__(self):
        return f"<FaucetClaim(id={self.id}, address={self.ss58_address}, status={self.status.value})>"


# Case-insensitive email uniqueness
Index("user_account_email_lower_uq", func.lower(UserAccount.email), unique=True)
