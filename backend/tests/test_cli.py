# backend/tests/test_cli.py
from typer.testing import CliRunner

from waitlist.cli import app
from waitlist.referral.service import SignupRequest, attribution_service

runner = CliRunner()


def test_init():
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    assert "Database initialized" in result.output


def test_db_health():
    result = runner.invoke(app, ["db-health"])
    assert result.exit_code == 0
    assert "DB OK" in result.output
    assert "sqlite" in result.output


def test_leaderboard_empty():
    result = runner.invoke(app, ["leaderboard", "--window", "all"])
    assert result.exit_code == 0
    assert "No referrers yet" in result.output


def test_leaderboard_table():
    referrer = attribution_service.signup(SignupRequest(email="alice@example.com"))
    attribution_service.signup(SignupRequest(email="bob@example.com", referral_code=referrer.referral_code))

    result = runner.invoke(app, ["leaderboard", "--window", "all", "--limit", "5"])

    assert result.exit_code == 0
    assert referrer.referral_code in result.output
    assert "ali***" in result.output
    assert "alice@example.com" not in result.output


def test_leaderboard_rejects_unknown_window():
    result = runner.invoke(app, ["leaderboard", "--window", "year"])
    assert result.exit_code != 0
