"""Absolute links and redirect targets built from the public origin."""

from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from starlette.requests import Request

from waitlist.settings import settings

DEFAULT_NEXT = "/success.html"


def public_base_url(request: Request) -> str:
    """Site origin: APP_URL if configured, else what the proxy or client reports."""
    if settings.app_url:
        return settings.app_url.split(",")[0].strip().rstrip("/")
    proto = request.headers.get("x-forwarded-proto")
    host = request.headers.get("x-forwarded-host")
    if proto and host:
        return f"{proto}://{host}"
    return str(request.base_url).rstrip("/")


def verification_link(request: Request, token: str) -> str:
    return f"{public_base_url(request)}/api/verify-email?{urlencode({'token': token})}"


def redirect_target(request: Request, next_path: str | None, referral_code: str | None) -> str:
    """Post-verification destination on the site's own origin.

    Off-site ``next`` values fall back to the default success page.
    """
    base = public_base_url(request)
    target = urljoin(base + "/", next_path or DEFAULT_NEXT)
    if urlsplit(target).netloc != urlsplit(base).netloc:
        target = urljoin(base + "/", DEFAULT_NEXT)

    if not referral_code:
        return target

    parts = urlsplit(target)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "ref"]
    query.append(("ref", referral_code))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))
