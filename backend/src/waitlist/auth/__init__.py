"""Verification credentials."""

from waitlist.auth.tokens import VerificationTokenService, token_service

__all__ = ["VerificationTokenService", "token_service"]
