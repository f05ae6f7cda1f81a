"""Email-verification credentials (signed JWT)."""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from waitlist.errors import InvalidTokenError
from waitlist.logging_config import get_logger
from waitlist.settings import settings

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_TYPE = "email-verify"


class VerificationTokenService:
    """Issues and consumes time-bounded email verification tokens.

    Tokens are HS256 JWTs carrying the account id in ``sub`` and a
    ``typ`` claim so that no other token kind can be replayed here.
    """

    def __init__(
        self,
        secret_key: str | None = None,
        issuer: str | None = None,
        audience: str | None = None,
        ttl: timedelta | None = None,
    ):
        self.secret_key = secret_key or settings.jwt_secret
        self.issuer = issuer or settings.jwt_issuer
        self.audience = audience or settings.jwt_audience
        self.ttl = ttl or timedelta(hours=settings.verify_token_ttl_hours)

    def issue(self, account_id: int, email: str | None = None, now: datetime | None = None) -> str:
        """Create a verification token for an account.

        Args:
            account_id: Account the token is bound to
            email: Included for debugging, never trusted on consume
            now: Issue time (defaults to the current time)

        Returns:
            Encoded JWT
        """
        now = now or datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": str(account_id),
            "typ": TOKEN_TYPE,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": now + self.ttl,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self.secret_key, algorithm=JWT_ALGORITHM)

    def consume(self, token: str) -> int:
        """Resolve a verification token to its account id.

        Args:
            token: Encoded JWT

        Returns:
            Account id

        Raises:
            InvalidTokenError: If the token is malformed, expired, or not a verification token
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[JWT_ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError as e:
            logger.info("verification_token_rejected", error=str(e))
            raise InvalidTokenError(str(e)) from e

        if payload.get("typ") != TOKEN_TYPE:
            logger.info("verification_token_wrong_type", typ=payload.get("typ"))
            raise InvalidTokenError("Unexpected token type")

        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("Invalid token payload") from e


# Global service instance
token_service = VerificationTokenService()
