"""Referral attribution and leaderboard.

- Signup with a referral code records SIGNUP(referrer, referee)
- Email verification records VERIFIED for the most recent SIGNUP referrer
- Leaderboard ranks referrers by weighted SIGNUP / VERIFIED counts
"""

from waitlist.referral.leaderboard import (
    LeaderboardQuery,
    LeaderboardRow,
    LeaderboardService,
    LeaderboardWindow,
    leaderboard_service,
)
from waitlist.referral.service import (
    AttributionService,
    SignupRequest,
    SignupResult,
    VerificationResult,
    attribution_service,
    make_referral_code,
)

__all__ = [
    "AttributionService",
    "LeaderboardQuery",
    "LeaderboardRow",
    "LeaderboardService",
    "LeaderboardWindow",
    "SignupRequest",
    "SignupResult",
    "VerificationResult",
    "attribution_service",
    "leaderboard_service",
    "make_referral_code",
]
