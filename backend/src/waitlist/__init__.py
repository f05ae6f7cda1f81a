"""Quantara Devnet-0 waitlist and referral backend."""

__version__ = "1.0.0"
