"""Persistence layer models."""

from waitlist.storage.models import (
    Base,
    FaucetClaim,
    FaucetStatus,
    ReferralEvent,
    ReferralKind,
    UserAccount,
)

__all__ = [
    "Base",
    "FaucetClaim",
    "FaucetStatus",
    "ReferralEvent",
    "ReferralKind",
    "UserAccount",
]
