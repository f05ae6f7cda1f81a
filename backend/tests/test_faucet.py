# backend/tests/test_faucet.py
from datetime import timedelta
from decimal import Decimal

import pytest

from waitlist.errors import ClaimNotFoundError, ClaimStateError, ValidationError
from waitlist.faucet.ledger import ClaimLedger, format_amount, hash_ip
from waitlist.storage.models import FaucetClaim, FaucetStatus, utcnow

ADDRESS = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"


@pytest.fixture
def ledger(database) -> ClaimLedger:
    return ClaimLedger(database=database, claims_per_hour=2)


def test_format_amount():
    assert format_amount(100) == "100.000000000000"
    assert format_amount("0.5") == "0.500000000000"
    assert format_amount(Decimal("0.000000000001")) == "0.000000000001"
    assert format_amount("1.9999999999999999") == "1.999999999999"


@pytest.mark.parametrize("bad", ["-1", "abc", "NaN", "Infinity", 1.5])
def test_format_amount_rejects(bad):
    with pytest.raises(ValidationError):
        format_amount(bad)


def test_hash_ip_is_salted():
    assert hash_ip("203.0.113.9", salt="a") == hash_ip(" 203.0.113.9 ", salt="a")
    assert hash_ip("203.0.113.9", salt="a") != hash_ip("203.0.113.9", salt="b")
    assert "203.0.113.9" not in hash_ip("203.0.113.9", salt="a")


def test_record_claim(ledger, database):
    claim = ledger.record_claim(ADDRESS, "203.0.113.9", "100")

    assert claim.status is FaucetStatus.PENDING
    assert claim.amount_qtr == "100.000000000000"
    assert claim.ip_hash == hash_ip("203.0.113.9")
    with database.session() as session:
        assert session.get(FaucetClaim, claim.id).ss58_address == ADDRESS


def test_record_claim_requires_address(ledger):
    with pytest.raises(ValidationError):
        ledger.record_claim("  ", "203.0.113.9", "1")


def test_mark_sent(ledger):
    claim = ledger.record_claim(ADDRESS, "203.0.113.9", "1")
    sent = ledger.mark_sent(claim.id, "0xabc")

    assert sent.status is FaucetStatus.SENT
    assert sent.tx_hash == "0xabc"


def test_mark_rejected(ledger):
    claim = ledger.record_claim(ADDRESS, "203.0.113.9", "1")
    rejected = ledger.mark_rejected(claim.id, "rate limited")

    assert rejected.status is FaucetStatus.REJECTED
    assert rejected.reason == "rate limited"


def test_transition_only_from_pending(ledger):
    claim = ledger.record_claim(ADDRESS, "203.0.113.9", "1")
    ledger.mark_sent(claim.id, "0xabc")

    with pytest.raises(ClaimStateError):
        ledger.mark_rejected(claim.id, "too late")
    with pytest.raises(ClaimStateError):
        ledger.mark_sent(claim.id, "0xdef")


def test_unknown_claim(ledger):
    with pytest.raises(ClaimNotFoundError):
        ledger.mark_sent(999, "0xabc")


def test_hourly_allowance(ledger):
    assert ledger.can_claim("203.0.113.9") is True
    ledger.record_claim(ADDRESS, "203.0.113.9", "1")
    ledger.record_claim(ADDRESS, "203.0.113.9", "1")

    assert ledger.recent_claims("203.0.113.9") == 2
    assert ledger.can_claim("203.0.113.9") is False
    assert ledger.can_claim("198.51.100.1") is True
    assert ledger.can_claim("203.0.113.9", now=utcnow() + timedelta(hours=2)) is True


def test_format_amount_large_values_keep_every_digit():
    assert format_amount(10**17) == "100000000000000000.000000000000"
    assert format_amount("123456789012345678901234567890.123456789012345") == (
        "123456789012345678901234567890.123456789012"
    )


def test_record_claim_large_amount(ledger):
    claim = ledger.record_claim(ADDRESS, "203.0.113.9", "123456789012345678")
    assert claim.amount_qtr == "123456789012345678.000000000000"
