"""Email service using the Resend API."""

import hashlib
from html import escape
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import httpx

from waitlist.logging_config import get_logger
from waitlist.settings import settings

logger = get_logger(__name__)


def _force_https(link: str) -> str:
    """Upgrade an absolute http link to https, leave anything else as is."""
    parts = urlsplit(link)
    if parts.scheme == "http":
        return urlunsplit(("https",) + tuple(parts[1:]))
    return link


class EmailService:
    """Transactional email over Resend.

    Sending is best-effort: failures are logged and reported as False,
    never raised, so a signup never fails because of email delivery.
    """

    RESEND_API_URL = "https://api.resend.com/emails"

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize email service."""
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.from_email = from_email or settings.email_from
        self.timeout = timeout or settings.external_timeout_seconds
        self.transport = transport
        self.enabled = bool(self.api_key)

        if not self.enabled:
            logger.warning("email_service_disabled", reason="RESEND_API_KEY not set")

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        tags: Optional[list[dict[str, str]]] = None,
    ) -> bool:
        """Send an email via the Resend API.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body (optional)
            idempotency_key: Deduplicates retried sends on Resend's side
            tags: Resend analytics tags

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.enabled:
            logger.warning("email_not_sent", reason="service_disabled", to=to_email)
            return False

        payload = {
            "from": self.from_email,
            "to": to_email,
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            payload["text"] = text_content
        if tags:
            payload["tags"] = tags

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(self.RESEND_API_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("email_send_error", to=to_email, error=str(e))
            return False

        if response.status_code in (200, 201, 202):
            logger.info("email_sent", to=to_email, subject=subject)
            return True

        logger.error(
            "email_send_failed",
            to=to_email,
            status=response.status_code,
            body=response.text[:500],
        )
        return False

    async def send_verification_email(self, to_email: str, link: str) -> bool:
        """Send the waitlist confirmation link.

        Args:
            to_email: Account email address
            link: Absolute verification URL

        Returns:
            True if sent successfully
        """
        url = _force_https(link)
        safe_url = escape(url, quote=True)

        subject = "Confirm your Quantara waitlist"

        html_content = f"""
        <div style="font-family:system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial,sans-serif;max-width:560px;line-height:1.5;color:#0b0c0c">
            <h2 style="margin:0 0 12px 0;font-weight:700;">Confirm your Quantara waitlist</h2>
            <p style="margin:0 0 16px 0;">You're almost in! Click the button below to confirm your email and lock in your spot.</p>
            <p style="margin:20px 0;">
                <a href="{safe_url}"
                   style="display:inline-block;background:#111827;color:#f9fafb;text-decoration:none;padding:10px 16px;border-radius:8px;font-weight:600"
                   target="_blank" rel="noopener">Confirm email</a>
            </p>
            <p style="margin:16px 0 0 0;font-size:14px;color:#4b5563;">Or paste this link into your browser:</p>
            <p style="margin:4px 0 0 0;font-size:13px;"><a href="{safe_url}" target="_blank" rel="noopener">{safe_url}</a></p>
            <hr style="border:none;border-top:1px solid #e5e7eb;margin:20px 0" />
            <p style="font-size:12px;color:#6b7280;margin:0;">If you didn't request this, you can safely ignore this email.</p>
        </div>
        """

        text_content = f"""You're almost in!

Tap the link below to confirm your email and lock in your spot:

{url}

If you didn't request this, you can ignore this message.
"""

        idempotency_key = hashlib.sha256(f"verify:{to_email}|{url}".encode()).hexdigest()[:32]

        return await self._send_email(
            to_email,
            subject,
            html_content,
            text_content,
            idempotency_key=idempotency_key,
            tags=[{"name": "purpose", "value": "verify-email"}],
        )


# Global email service instance
email_service = EmailService()
