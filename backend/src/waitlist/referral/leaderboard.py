"""Referral leaderboard: weighted, windowed ranking of referrers."""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import and_, case, func, select

from waitlist.logging_config import get_logger
from waitlist.storage.db import Database, db
from waitlist.storage.models import ReferralEvent, ReferralKind, UserAccount, utcnow

logger = get_logger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class LeaderboardWindow(str, Enum):
    """Time range the leaderboard counts events over."""
    WEEK = "week"
    MONTH = "month"
    ALL = "all"

    def start(self, now: datetime | None = None) -> datetime | None:
        """Inclusive lower bound for event timestamps (naive UTC).

        ``week`` starts Monday 00:00, ``month`` on the 1st at 00:00,
        ``all`` has no bound.
        """
        now = now or utcnow()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if self is LeaderboardWindow.WEEK:
            return midnight - timedelta(days=midnight.weekday())
        if self is LeaderboardWindow.MONTH:
            return midnight.replace(day=1)
        return None


@dataclass
class LeaderboardQuery:
    window: LeaderboardWindow = LeaderboardWindow.WEEK
    signup_weight: int = 1
    verified_weight: int = 2
    limit: int = DEFAULT_LIMIT
    min_points: int = 0

    def __post_init__(self):
        self.window = LeaderboardWindow(self.window)
        self.limit = max(1, min(MAX_LIMIT, self.limit))


@dataclass
class LeaderboardRow:
    rank: int
    referral_code: str
    name: str
    signups: int
    verified: int
    points: int

    def to_dict(self) -> dict:
        return asdict(self)


def mask_email(email: str) -> str:
    """Public display name: first three characters of the local part."""
    return f"{email.split('@')[0][:3]}***"


class LeaderboardService:
    """Read-only ranking over the referral ledger."""

    def __init__(self, database: Database | None = None):
        self.db = database or db

    def rank(self, query: LeaderboardQuery | None = None, now: datetime | None = None) -> list[LeaderboardRow]:
        """Rank every account holding a referral code.

        Points are ``signups * signup_weight + verified * verified_weight``,
        counting only events at or after the window start. Ties break on
        verified count, then signup count, then earliest account.

        Args:
            query: Window, weights, limit and minimum points
            now: Reference time for the window (defaults to the current time)

        Returns:
            Ranked rows, emails masked
        """
        query = query or LeaderboardQuery()
        start = query.window.start(now)

        join_on = ReferralEvent.referrer_id == UserAccount.id
        if start is not None:
            join_on = and_(join_on, ReferralEvent.created_at >= start)

        signups = func.coalesce(
            func.sum(case((ReferralEvent.kind == ReferralKind.SIGNUP, 1), else_=0)), 0
        ).label("signups")
        verified = func.coalesce(
            func.sum(case((ReferralEvent.kind == ReferralKind.VERIFIED, 1), else_=0)), 0
        ).label("verified")
        points = (signups * query.signup_weight + verified * query.verified_weight).label("points")

        stmt = (
            select(UserAccount.referral_code, UserAccount.email, signups, verified, points)
            .select_from(UserAccount)
            .outerjoin(ReferralEvent, join_on)
            .where(UserAccount.referral_code.is_not(None))
            .group_by(UserAccount.id, UserAccount.referral_code, UserAccount.email, UserAccount.created_at)
            .having(points >= query.min_points)
            .order_by(
                points.desc(),
                verified.desc(),
                signups.desc(),
                UserAccount.created_at.asc(),
                UserAccount.id.asc(),
            )
            .limit(query.limit)
        )

        with self.db.session() as session:
            result = session.execute(stmt).all()

        rows = [
            LeaderboardRow(
                rank=position,
                referral_code=row.referral_code,
                name=mask_email(row.email),
                signups=int(row.signups),
                verified=int(row.verified),
                points=int(row.points),
            )
            for position, row in enumerate(result, start=1)
        ]
        logger.debug("leaderboard_ranked", window=query.window.value, rows=len(rows))
        return rows


# Global service instance
leaderboard_service = LeaderboardService()
