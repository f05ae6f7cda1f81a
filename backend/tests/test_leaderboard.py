# backend/tests/test_leaderboard.py
from datetime import datetime, timedelta

import pytest

from waitlist.referral.leaderboard import LeaderboardQuery, LeaderboardWindow, mask_email
from waitlist.storage.models import ReferralEvent, ReferralKind, UserAccount

# A Wednesday
NOW = datetime(2026, 10, 14, 15, 30)


def add_account(database, email: str, code: str | None, created_at: datetime | None = None) -> int:
    with database.session() as session:
        account = UserAccount(email=email, referral_code=code, created_at=created_at or NOW - timedelta(days=60))
        session.add(account)
        session.flush()
        return account.id


def add_event(database, referrer_id: int, referee_id: int, kind: ReferralKind, created_at: datetime = NOW):
    with database.session() as session:
        session.add(ReferralEvent(referrer_id=referrer_id, referee_id=referee_id, kind=kind, created_at=created_at))


def add_referees(database, referrer_id: int, signups: int, verified: int, created_at: datetime = NOW):
    for i in range(signups):
        referee = add_account(database, f"ref{referrer_id}-{i}-{created_at:%d%H}@example.com", None)
        add_event(database, referrer_id, referee, ReferralKind.SIGNUP, created_at)
        if i < verified:
            add_event(database, referrer_id, referee, ReferralKind.VERIFIED, created_at)


def test_window_start():
    assert LeaderboardWindow.WEEK.start(NOW) == datetime(2026, 10, 12)
    assert LeaderboardWindow.MONTH.start(NOW) == datetime(2026, 10, 1)
    assert LeaderboardWindow.ALL.start(NOW) is None


def test_week_starts_on_monday_itself():
    monday = datetime(2026, 10, 12, 0, 0, 1)
    assert LeaderboardWindow.WEEK.start(monday) == datetime(2026, 10, 12)


def test_mask_email():
    assert mask_email("alice@example.com") == "ali***"
    assert mask_email("al@example.com") == "al***"


def test_query_clamps_limit():
    assert LeaderboardQuery(limit=0).limit == 1
    assert LeaderboardQuery(limit=500).limit == 100
    assert LeaderboardQuery(window="all").window is LeaderboardWindow.ALL


def test_weighted_score(database, leaderboard):
    alice = add_account(database, "alice@example.com", "ALICE0001")
    add_referees(database, alice, signups=3, verified=1)

    rows = leaderboard.rank(LeaderboardQuery(window=LeaderboardWindow.ALL), now=NOW)

    assert len(rows) == 1
    row = rows[0]
    assert (row.signups, row.verified, row.points) == (3, 1, 5)
    assert row.name == "ali***"
    assert "alice@example.com" not in row.to_dict().values()


def test_custom_weights(database, leaderboard):
    alice = add_account(database, "alice@example.com", "ALICE0001")
    add_referees(database, alice, signups=3, verified=1)

    query = LeaderboardQuery(window=LeaderboardWindow.ALL, signup_weight=0, verified_weight=10)
    assert leaderboard.rank(query, now=NOW)[0].points == 10


def test_window_excludes_older_events(database, leaderboard):
    alice = add_account(database, "alice@example.com", "ALICE0001")
    add_referees(database, alice, signups=1, verified=0, created_at=NOW)
    add_referees(database, alice, signups=2, verified=0, created_at=datetime(2026, 10, 5, 12))
    add_referees(database, alice, signups=4, verified=0, created_at=datetime(2026, 8, 1))

    def signups(window):
        return leaderboard.rank(LeaderboardQuery(window=window), now=NOW)[0].signups

    assert signups(LeaderboardWindow.WEEK) == 1
    assert signups(LeaderboardWindow.MONTH) == 3
    assert signups(LeaderboardWindow.ALL) == 7


def test_accounts_without_events_score_zero(database, leaderboard):
    add_account(database, "quiet@example.com", "QUIET0001")
    add_account(database, "nocode@example.com", None)

    rows = leaderboard.rank(LeaderboardQuery(window=LeaderboardWindow.ALL), now=NOW)

    assert [row.referral_code for row in rows] == ["QUIET0001"]
    assert rows[0].points == 0


def test_min_points_filter(database, leaderboard):
    alice = add_account(database, "alice@example.com", "ALICE0001")
    add_referees(database, alice, signups=2, verified=0)
    add_account(database, "quiet@example.com", "QUIET0001")

    rows = leaderboard.rank(LeaderboardQuery(window=LeaderboardWindow.ALL, min_points=1), now=NOW)
    assert [row.referral_code for row in rows] == ["ALICE0001"]


def test_tie_breaks(database, leaderboard):
    # Same points (4): verified beats signups, then the older account wins
    signups_only = add_account(database, "sig@example.com", "SIG000001", NOW - timedelta(days=90))
    verified_heavy = add_account(database, "ver@example.com", "VER000001", NOW - timedelta(days=10))
    late_twin = add_account(database, "twin@example.com", "TWIN00001", NOW - timedelta(days=5))
    add_referees(database, signups_only, signups=4, verified=0)
    add_referees(database, verified_heavy, signups=2, verified=1)
    add_referees(database, late_twin, signups=2, verified=1)

    rows = leaderboard.rank(LeaderboardQuery(window=LeaderboardWindow.ALL), now=NOW)

    assert [row.referral_code for row in rows[:3]] == ["VER000001", "TWIN00001", "SIG000001"]
    assert [row.rank for row in rows[:3]] == [1, 2, 3]
    assert {row.points for row in rows[:3]} == {4}


def test_limit(database, leaderboard):
    for i in range(5):
        add_account(database, f"user{i}@example.com", f"USER{i:05d}")

    rows = leaderboard.rank(LeaderboardQuery(window=LeaderboardWindow.ALL, limit=3), now=NOW)
    assert len(rows) == 3


@pytest.mark.parametrize("window", list(LeaderboardWindow))
def test_empty_ledger(leaderboard, window):
    assert leaderboard.rank(LeaderboardQuery(window=window), now=NOW) == []
