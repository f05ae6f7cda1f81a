"""Referral leaderboard endpoint."""

from fastapi import APIRouter, Query, Response

from waitlist.logging_config import get_logger
from waitlist.referral.leaderboard import (
    DEFAULT_LIMIT,
    LeaderboardQuery,
    LeaderboardWindow,
    leaderboard_service,
)

logger = get_logger(__name__)

router = APIRouter(tags=["leaderboard"])


@router.get("/leaderboard")
async def get_leaderboard(
    response: Response,
    window: str = Query(default="week"),
    limit: int = Query(default=DEFAULT_LIMIT),
    min_points: int = Query(default=0, alias="min", ge=0),
    signup_weight: int = Query(default=1, ge=0),
    verified_weight: int = Query(default=2, ge=0),
):
    """Top referrers by weighted SIGNUP / VERIFIED events.

    ``window`` is week, month or all (anything else counts as week);
    ``limit`` is clamped to 1..100.
    """
    try:
        selected = LeaderboardWindow(window.lower())
    except ValueError:
        selected = LeaderboardWindow.WEEK

    query = LeaderboardQuery(
        window=selected,
        signup_weight=signup_weight,
        verified_weight=verified_weight,
        limit=limit,
        min_points=min_points,
    )
    rows = leaderboard_service.rank(query)

    response.headers["Cache-Control"] = "public, s-maxage=30, stale-while-revalidate=60"
    return {
        "ok": True,
        "window": selected.value,
        "weights": {"signup": signup_weight, "verified": verified_weight},
        "data": [row.to_dict() for row in rows],
    }
