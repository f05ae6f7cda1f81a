"""Rate limiting configuration for the waitlist API."""

from slowapi import Limiter
from starlette.requests import Request

from waitlist.settings import settings


def client_ip(request: Request) -> str:
    """Originating client IP, honouring the proxy headers set by the edge."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


# Single shared limiter instance - disabled in non-production environments
limiter = Limiter(
    key_func=client_ip,
    default_limits=["200/minute"],
    storage_uri="memory://",
    enabled=settings.is_production,
)
