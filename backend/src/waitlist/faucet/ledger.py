"""Faucet claim ledger."""

import hashlib
import hmac
from datetime import datetime, timedelta
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from sqlalchemy import func, select

from waitlist.errors import ClaimNotFoundError, ClaimStateError, ValidationError
from waitlist.logging_config import get_logger
from waitlist.settings import settings
from waitlist.storage.db import Database, db
from waitlist.storage.models import FaucetClaim, FaucetStatus, utcnow

logger = get_logger(__name__)

RATE_WINDOW = timedelta(hours=1)


def format_amount(amount: Decimal | str | int, decimals: int | None = None) -> str:
    """Exact fixed-point text for a token amount, e.g. ``"100.000000000000"``.

    Extra precision is truncated, never rounded up.

    Raises:
        ValidationError: If the amount is not a finite non-negative number
    """
    if isinstance(amount, float):
        raise ValidationError("Amount must be given as Decimal, int or str, not float")
    decimals = settings.token_decimals if decimals is None else decimals
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValidationError(f"Invalid amount: {amount!r}") from e
    if not value.is_finite() or value < 0:
        raise ValidationError(f"Invalid amount: {amount!r}")
    quantum = Decimal(1).scaleb(-decimals)
    with localcontext() as ctx:
        # Room for every integer digit plus the fractional places
        ctx.prec = max(ctx.prec, value.adjusted() + decimals + 2)
        try:
            quantized = value.quantize(quantum, rounding=ROUND_DOWN)
        except InvalidOperation as e:
            raise ValidationError(f"Invalid amount: {amount!r}") from e
    # "f" keeps tiny amounts out of exponent notation ("1E-12")
    return format(quantized, "f")


def hash_ip(ip_address: str, salt: str | None = None) -> str:
    """Salted SHA-256 of a client IP; raw addresses are never stored."""
    key = (salt if salt is not None else settings.faucet_ip_salt).encode()
    return hmac.new(key, ip_address.strip().encode(), hashlib.sha256).hexdigest()


class ClaimLedger:
    """Append-only record of faucet disbursement attempts.

    Claims start PENDING and move exactly once, to SENT or REJECTED.
    """

    def __init__(self, database: Database | None = None, claims_per_hour: int | None = None):
        self.db = database or db
        self.claims_per_hour = claims_per_hour if claims_per_hour is not None else settings.faucet_claims_per_hour

    def record_claim(
        self,
        address: str,
        ip_address: str,
        amount: Decimal | str | int,
        user_id: int | None = None,
    ) -> FaucetClaim:
        """Append a PENDING claim.

        Args:
            address: SS58 target address
            ip_address: Origin IP (hashed before storage)
            amount: Token amount, stored with full precision
            user_id: Claimant account, if known

        Returns:
            The stored claim
        """
        address = (address or "").strip()
        if not address:
            raise ValidationError("Missing address")

        with self.db.session() as session:
            claim = FaucetClaim(
                user_id=user_id,
                ss58_address=address,
                ip_hash=hash_ip(ip_address),
                amount_qtr=format_amount(amount),
                status=FaucetStatus.PENDING,
            )
            session.add(claim)
            session.flush()

        logger.info("faucet_claim_recorded", claim_id=claim.id, address=address, amount=claim.amount_qtr)
        return claim

    def mark_sent(self, claim_id: int, tx_hash: str) -> FaucetClaim:
        """Record a successful disbursement."""
        return self._transition(claim_id, FaucetStatus.SENT, tx_hash=tx_hash)

    def mark_rejected(self, claim_id: int, reason: str) -> FaucetClaim:
        """Record a refused claim."""
        return self._transition(claim_id, FaucetStatus.REJECTED, reason=reason)

    def _transition(
        self,
        claim_id: int,
        status: FaucetStatus,
        tx_hash: str | None = None,
        reason: str | None = None,
    ) -> FaucetClaim:
        with self.db.session() as session:
            claim = session.get(FaucetClaim, claim_id)
            if claim is None:
                raise ClaimNotFoundError(f"Claim {claim_id} not found")
            if claim.status != FaucetStatus.PENDING:
                raise ClaimStateError(f"Claim {claim_id} is already {claim.status.value}")
            claim.status = status
            claim.tx_hash = tx_hash
            claim.reason = reason

        logger.info("faucet_claim_updated", claim_id=claim_id, status=status.value)
        return claim

    def recent_claims(self, ip_address: str, now: datetime | None = None) -> int:
        """Claims from this IP inside the rate window."""
        since = (now or utcnow()) - RATE_WINDOW
        with self.db.session() as session:
            return session.scalar(
                select(func.count(FaucetClaim.id)).where(
                    FaucetClaim.ip_hash == hash_ip(ip_address),
                    FaucetClaim.created_at >= since,
                )
            ) or 0

    def can_claim(self, ip_address: str, now: datetime | None = None) -> bool:
        """Whether this IP is still under its hourly claim allowance."""
        return self.recent_claims(ip_address, now) < self.claims_per_hour


# Global ledger instance
claim_ledger = ClaimLedger()
