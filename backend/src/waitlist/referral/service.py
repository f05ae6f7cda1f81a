"""Referral attribution: account upsert, code minting and ledger crediting."""

import re
import secrets
import string
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from waitlist.errors import AccountNotFoundError, CodeExhaustedError, ValidationError
from waitlist.logging_config import get_logger
from waitlist.storage.db import Database, db
from waitlist.storage.models import ReferralEvent, ReferralKind, UserAccount

logger = get_logger(__name__)

# Attempts at a fresh referral code before giving up
MAX_CODE_ATTEMPTS = 3

PROFILE_FIELDS = ("role", "experience", "discord", "github", "country")

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def make_referral_code(email: str) -> str:
    """Build a human-legible referral code candidate.

    Up to six alphanumerics from the email's local part, uppercased,
    followed by four random uppercase alphanumerics: ``alice.b@x.io`` -> ``ALICEBK3Q7``.
    """
    prefix = _NON_ALNUM.sub("", email.split("@")[0])[:6].upper()
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"{prefix}{suffix}"


def normalize_email(email: str | None) -> str:
    """Trim and lowercase an email, rejecting anything without a local part and domain."""
    normalized = (email or "").strip().lower()
    local, _, domain = normalized.partition("@")
    if not local or not domain:
        raise ValidationError("Invalid email")
    return normalized


def merge_attribution(existing: dict[str, str] | None, incoming: dict[str, str | None] | None) -> dict[str, str]:
    """Overlay incoming non-null attribution values onto the existing map."""
    merged = {k: v for k, v in (existing or {}).items() if v is not None}
    for key, value in (incoming or {}).items():
        if value is not None:
            merged[key] = value
    return merged


def _is_unique_violation(exc: IntegrityError, *markers: str) -> bool:
    """Whether an IntegrityError is a uniqueness failure naming one of ``markers``.

    SQLite reports ``UNIQUE constraint failed: user_account.referral_code``,
    PostgreSQL ``duplicate key value violates unique constraint "..._uq"``.
    """
    message = str(exc.orig).lower()
    if "unique" not in message and "duplicate" not in message:
        return False
    return any(marker in message for marker in markers)


@dataclass
class SignupRequest:
    """Signup input after transport-level validation."""

    email: str
    role: str | None = None
    experience: str | None = None
    discord: str | None = None
    github: str | None = None
    country: str | None = None
    referral_code: str | None = None
    attribution: dict[str, str | None] = field(default_factory=dict)

    def profile(self) -> dict[str, str]:
        """Profile fields that were actually supplied."""
        return {
            name: getattr(self, name)
            for name in PROFILE_FIELDS
            if getattr(self, name) is not None
        }


@dataclass
class SignupResult:
    account_id: int
    email: str
    referral_code: str
    is_new_account: bool
    referrer_id: int | None = None  # Set when this call recorded a SIGNUP event


@dataclass
class VerificationResult:
    account_id: int
    referral_code: str | None
    already_verified: bool
    awarded: bool


class AttributionService:
    """Turns signups and email verifications into identity and ledger state.

    The database is the only lock: case-insensitive email uniqueness,
    referral-code uniqueness and the (referrer, referee, kind) ledger key are
    all enforced by unique indexes, and this service reacts to the
    IntegrityError each one raises.
    """

    def __init__(
        self,
        database: Database | None = None,
        code_factory: Callable[[str], str] = make_referral_code,
    ):
        """Initialize attribution service.

        Args:
            database: Database handle (defaults to the process-wide one)
            code_factory: Referral-code candidate generator
        """
        self.db = database or db
        self.code_factory = code_factory
        self.logger = get_logger(__name__)

    # ==================== SIGNUP ====================

    def signup(self, request: SignupRequest) -> SignupResult:
        """Upsert an account and credit its referrer.

        Args:
            request: Signup fields

        Returns:
            Account id, referral code and whether the account is new

        Raises:
            ValidationError: If the email is malformed
            CodeExhaustedError: If no unique referral code could be minted
        """
        email = normalize_email(request.email)
        account_id, referral_code, is_new = self._upsert_account(email, request)

        referrer_id = None
        code_in = (request.referral_code or "").strip().upper()
        if code_in:
            referrer_id = self._credit_signup(code_in, account_id)

        self.logger.info(
            "signup_processed",
            account_id=account_id,
            is_new=is_new,
            referred_by=referrer_id,
        )
        return SignupResult(
            account_id=account_id,
            email=email,
            referral_code=referral_code,
            is_new_account=is_new,
            referrer_id=referrer_id,
        )

    def _upsert_account(self, email: str, request: SignupRequest) -> tuple[int, str, bool]:
        """Create or merge the account for ``email``.

        Returns:
            (account id, referral code, created)
        """
        existing_id = self._find_account_id(email)

        if existing_id is None:
            try:
                account_id, code = self._insert_account(email, request)
                return account_id, code, True
            except IntegrityError as e:
                if not _is_unique_violation(e, "email"):
                    raise
                # A concurrent signup for the same email won the insert
                self.logger.info("signup_insert_race", email=email)
                existing_id = self._find_account_id(email)
                if existing_id is None:
                    raise

        account_id, code = self._update_account(existing_id, request)
        if code is None:
            code = self._mint_code_for(account_id, email)
        return account_id, code, False

    def _find_account_id(self, email: str) -> int | None:
        with self.db.session() as session:
            return session.scalar(
                select(UserAccount.id).where(func.lower(UserAccount.email) == email)
            )

    def _insert_account(self, email: str, request: SignupRequest) -> tuple[int, str]:
        """Insert a new account, regenerating the referral code on collision."""
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            candidate = self.code_factory(email)
            try:
                with self.db.session() as session:
                    account = UserAccount(
                        email=email,
                        referral_code=candidate,
                        turnstile_ok=True,
                        utm=merge_attribution({}, request.attribution),
                        **request.profile(),
                    )
                    session.add(account)
                    session.flush()
                    account_id = account.id
                self.logger.info("account_created", account_id=account_id, referral_code=candidate)
                return account_id, candidate
            except IntegrityError as e:
                if not _is_unique_violation(e, "referral_code"):
                    raise
                self.logger.warning("referral_code_collision", candidate=candidate, attempt=attempt)

        self.logger.error("referral_code_exhausted", email=email, attempts=MAX_CODE_ATTEMPTS)
        raise CodeExhaustedError(email, MAX_CODE_ATTEMPTS)

    def _update_account(self, account_id: int, request: SignupRequest) -> tuple[int, str | None]:
        """Merge supplied profile fields and attribution into an existing account."""
        with self.db.session() as session:
            account = session.get(UserAccount, account_id)
            for name, value in request.profile().items():
                setattr(account, name, value)
            account.utm = merge_attribution(account.utm, request.attribution)
            account.turnstile_ok = True
            code = account.referral_code

        self.logger.info("account_updated", account_id=account_id)
        return account_id, code

    def _mint_code_for(self, account_id: int, email: str) -> str:
        """Assign a referral code to an existing account that lacks one."""
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            candidate = self.code_factory(email)
            try:
                with self.db.session() as session:
                    account = session.get(UserAccount, account_id)
                    if account.referral_code:
                        # Minted by a concurrent request in the meantime
                        return account.referral_code
                    account.referral_code = candidate
                self.logger.info("referral_code_assigned", account_id=account_id, referral_code=candidate)
                return candidate
            except IntegrityError as e:
                if not _is_unique_violation(e, "referral_code"):
                    raise
                self.logger.warning("referral_code_collision", candidate=candidate, attempt=attempt)

        self.logger.error("referral_code_exhausted", email=email, attempts=MAX_CODE_ATTEMPTS)
        raise CodeExhaustedError(email, MAX_CODE_ATTEMPTS)

    def _credit_signup(self, code: str, referee_id: int) -> int | None:
        """Record SIGNUP(referrer, referee) for a referral code.

        Unknown codes and self-referrals are ignored.

        Returns:
            Referrer id if a new SIGNUP event was written
        """
        referrer_id = self.resolve_code(code)
        if referrer_id is None:
            self.logger.info("referral_code_unknown", code=code, referee_id=referee_id)
            return None
        if referrer_id == referee_id:
            self.logger.info("referral_self_ignored", account_id=referee_id)
            return None

        if not self._append_event(referrer_id, referee_id, ReferralKind.SIGNUP):
            return None

        # referred_by mirrors the first SIGNUP event crediting this account
        with self.db.session() as session:
            referee = session.get(UserAccount, referee_id)
            if referee.referred_by is None:
                referee.referred_by = referrer_id
        return referrer_id

    def resolve_code(self, code: str) -> int | None:
        """Account id owning a referral code, if any."""
        code = (code or "").strip().upper()
        if not code:
            return None
        with self.db.session() as session:
            return session.scalar(
                select(UserAccount.id).where(UserAccount.referral_code == code)
            )

    # ==================== VERIFICATION ====================

    def verify_email(self, account_id: int) -> VerificationResult:
        """Mark an account's email verified and credit its referrer once.

        Re-running on an already verified account is safe: the VERIFIED
        event is only written if the ledger does not hold it yet.

        Args:
            account_id: Account resolved from the verification credential

        Returns:
            Verification outcome; ``awarded`` is True only if this call wrote the event

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        with self.db.session() as session:
            account = session.get(UserAccount, account_id)
            if account is None:
                raise AccountNotFoundError(account_id)

            already_verified = account.email_verified
            account.email_verified = True
            referral_code = account.referral_code

            referrer_id = session.scalar(
                select(ReferralEvent.referrer_id)
                .where(
                    ReferralEvent.referee_id == account_id,
                    ReferralEvent.kind == ReferralKind.SIGNUP,
                )
                .order_by(ReferralEvent.created_at.desc(), ReferralEvent.id.desc())
                .limit(1)
            )

        awarded = False
        if referrer_id is not None:
            awarded = self._append_event(referrer_id, account_id, ReferralKind.VERIFIED)

        self.logger.info(
            "email_verified",
            account_id=account_id,
            already_verified=already_verified,
            referrer_id=referrer_id,
            awarded=awarded,
        )
        return VerificationResult(
            account_id=account_id,
            referral_code=referral_code,
            already_verified=already_verified,
            awarded=awarded,
        )

    # ==================== LEDGER ====================

    def _append_event(self, referrer_id: int, referee_id: int, kind: ReferralKind) -> bool:
        """Insert a ledger row.

        Returns:
            True if the row was written, False if it already existed
        """
        try:
            with self.db.session() as session:
                session.add(ReferralEvent(referrer_id=referrer_id, referee_id=referee_id, kind=kind))
        except IntegrityError as e:
            if not _is_unique_violation(e, "referral_event", "ref_event_"):
                raise
            self.logger.debug(
                "referral_event_exists",
                kind=kind.value,
                referrer_id=referrer_id,
                referee_id=referee_id,
            )
            return False

        self.logger.info(
            "referral_event_recorded",
            kind=kind.value,
            referrer_id=referrer_id,
            referee_id=referee_id,
        )
        return True

    def events_for(self, account_id: int) -> list[ReferralEvent]:
        """All ledger rows where the account is referrer or referee, oldest first."""
        with self.db.session() as session:
            return list(
                session.scalars(
                    select(ReferralEvent)
                    .where(
                        (ReferralEvent.referrer_id == account_id)
                        | (ReferralEvent.referee_id == account_id)
                    )
                    .order_by(ReferralEvent.created_at, ReferralEvent.id)
                )
            )


# Global service instance
attribution_service = AttributionService()
