"""Domain errors raised by the waitlist services.

The API layer maps each class to an HTTP status; anything not listed here
is reported to the caller as an opaque internal error.
"""


class WaitlistError(Exception):
    """Base class for expected, classified failures."""

    status_code = 500
    public_message = "Internal error"


class ValidationError(WaitlistError):
    """Malformed input. Nothing was written."""

    status_code = 400

    @property
    def public_message(self) -> str:
        return str(self) or "Invalid payload"


class HumanCheckFailedError(WaitlistError):
    """The Turnstile token was rejected. Nothing was written."""

    status_code = 401
    public_message = "Human verification failed"


class InvalidTokenError(WaitlistError):
    """Verification credential is malformed, expired or of the wrong type."""

    status_code = 401
    public_message = "Invalid or expired token"


class AccountNotFoundError(WaitlistError):
    """No account exists for the given id."""

    status_code = 404
    public_message = "User not found"

    def __init__(self, account_id: int):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class CodeExhaustedError(WaitlistError):
    """Every referral-code candidate collided with an existing code."""

    def __init__(self, email: str, attempts: int):
        self.email = email
        self.attempts = attempts
        super().__init__(f"Could not mint a unique referral code after {attempts} attempts")


class ClaimNotFoundError(WaitlistError):
    """No faucet claim exists for the given id."""

    status_code = 404
    public_message = "Claim not found"


class ClaimStateError(WaitlistError):
    """A faucet claim transition was attempted from a non-pending state."""

    status_code = 409
    public_message = "Claim already processed"
