"""Waitlist signup and email verification endpoints."""

import json

from fastapi import APIRouter, BackgroundTasks, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from waitlist.api.links import redirect_target, verification_link
from waitlist.api.rate_limit import client_ip, limiter
from waitlist.api.schemas import JoinedUser, JoinRequest, JoinResponse
from waitlist.auth.tokens import token_service
from waitlist.email.service import email_service
from waitlist.errors import HumanCheckFailedError, ValidationError
from waitlist.human.turnstile import turnstile_verifier
from waitlist.logging_config import get_logger
from waitlist.referral.service import SignupRequest, attribution_service
from waitlist.settings import settings

logger = get_logger(__name__)

router = APIRouter(tags=["waitlist"])


@router.post("/waitlist", response_model=JoinResponse, response_model_exclude_none=True)
@limiter.limit("10/minute")
async def join_waitlist(
    request: Request,
    response: Response,
    body: JoinRequest,
    background_tasks: BackgroundTasks,
):
    """Join the waitlist.

    Verifies the Turnstile token before touching the database, upserts the
    account, credits the referrer and queues the verification email.
    """
    ip = client_ip(request)
    if not await turnstile_verifier.verify(body.turnstile_token, ip):
        logger.info("signup_human_check_failed", ip=ip)
        raise HumanCheckFailedError()

    result = attribution_service.signup(
        SignupRequest(
            email=body.email,
            role=body.role,
            experience=body.experience,
            discord=body.discord,
            github=body.github,
            country=body.country,
            referral_code=body.referral_code(),
            attribution=body.attribution(),
        )
    )

    verify_token = token_service.issue(result.account_id, result.email)

    # Delivery runs after the response; its failure never fails the signup
    email_queued = email_service.enabled
    if email_queued:
        background_tasks.add_task(
            email_service.send_verification_email,
            result.email,
            verification_link(request, verify_token),
        )

    response.headers["Cache-Control"] = "no-store"
    return JoinResponse(
        id=result.account_id,
        code=result.referral_code,
        is_new=result.is_new_account,
        email_queued=email_queued,
        user=JoinedUser(email=result.email, referral_code=result.referral_code),
        verify_token=None if settings.is_production else verify_token,
    )


async def _token_from_body(request: Request) -> str | None:
    raw = await request.body()
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    token = data.get("token") if isinstance(data, dict) else None
    return token if isinstance(token, str) and token else None


def _token_from_header(request: Request) -> str | None:
    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


@router.api_route("/verify-email", methods=["GET", "POST"])
async def verify_email(
    request: Request,
    token: str | None = Query(default=None),
    next: str | None = Query(default=None),
    mode: str | None = Query(default=None),
):
    """Confirm an email address from the emailed link.

    The credential is read from ``?token=``, then a JSON body ``token``,
    then an ``Authorization: Bearer`` header. Redirects (302) to ``next``
    with ``ref=<code>`` unless ``mode=json``.
    """
    token = token or await _token_from_body(request) or _token_from_header(request)
    if not token:
        raise ValidationError("Missing token")

    account_id = token_service.consume(token)
    result = attribution_service.verify_email(account_id)

    destination = redirect_target(request, next, result.referral_code)
    headers = {"Cache-Control": "no-store"}

    if mode == "json":
        return JSONResponse(
            {
                "ok": True,
                "verified": True,
                "already_verified": result.already_verified,
                "awarded": result.awarded,
                "redirect": destination,
            },
            headers=headers,
        )

    return RedirectResponse(destination, status_code=302, headers=headers)
