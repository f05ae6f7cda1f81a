"""Cloudflare Turnstile human check."""

import httpx

from waitlist.logging_config import get_logger
from waitlist.settings import settings

logger = get_logger(__name__)

# Body fields a client may carry the Turnstile token in, by preference
TOKEN_FIELDS = ("cf-turnstile-response", "cf_turnstile_response", "turnstileToken", "token")


class TurnstileVerifier:
    """Validates Turnstile tokens against Cloudflare's siteverify API.

    Every failure mode (missing secret, HTTP error, timeout, malformed
    response) counts as "not human"; the caller decides how to respond.
    """

    def __init__(
        self,
        secret_key: str | None = None,
        verify_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.turnstile_secret_key
        self.verify_url = verify_url or settings.turnstile_verify_url
        self.timeout = timeout or settings.external_timeout_seconds
        self.transport = transport

    def bypass_allowed(self, token: str) -> bool:
        """The bypass token only works outside production."""
        return not settings.is_production and token == settings.turnstile_bypass_token

    async def verify(self, token: str | None, remote_ip: str | None = None) -> bool:
        """Check a Turnstile token.

        Args:
            token: Token produced by the widget
            remote_ip: Client IP forwarded to Cloudflare (optional)

        Returns:
            True if Cloudflare accepted the token
        """
        if not token:
            return False
        if self.bypass_allowed(token):
            logger.debug("turnstile_bypassed")
            return True
        if not self.secret_key:
            logger.warning("turnstile_not_configured", reason="TURNSTILE_SECRET_KEY not set")
            return False

        form = {"secret": self.secret_key, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(self.verify_url, data=form)
        except httpx.HTTPError as e:
            logger.warning("turnstile_request_failed", error=str(e))
            return False

        if response.status_code != 200:
            logger.warning("turnstile_http_error", status=response.status_code)
            return False

        try:
            data = response.json()
        except ValueError:
            logger.warning("turnstile_bad_response", body=response.text[:200])
            return False

        success = bool(data.get("success"))
        if not success:
            logger.info("turnstile_rejected", errors=data.get("error-codes"))
        return success


# Global verifier instance
turnstile_verifier = TurnstileVerifier()
