from waitlist.human.turnstile import TOKEN_FIELDS, TurnstileVerifier, turnstile_verifier

__all__ = ["TOKEN_FIELDS", "TurnstileVerifier", "turnstile_verifier"]
