"""Site endpoints: network config, homepage metrics, health and Turnstile check."""

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from waitlist.api.rate_limit import client_ip, limiter
from waitlist.api.schemas import TurnstileCheckRequest
from waitlist.human.turnstile import turnstile_verifier
from waitlist.logging_config import get_logger
from waitlist.network.config import build_network_config
from waitlist.network.metrics import metrics_service
from waitlist.settings import settings
from waitlist.storage.db import db

logger = get_logger(__name__)

router = APIRouter(tags=["site"])


@router.get("/config")
async def get_config(response: Response):
    """Chain parameters and site links."""
    response.headers["Cache-Control"] = "public, max-age=300, s-maxage=300"
    return {"ok": True, "data": build_network_config().model_dump(by_alias=True)}


@router.get("/metrics")
async def get_metrics(response: Response):
    """Waitlist size, country spread and node telemetry."""
    metrics = await metrics_service.collect()
    response.headers["Cache-Control"] = "s-maxage=60, stale-while-revalidate=600"
    return {"ok": True, "data": metrics.to_dict()}


@router.get("/health")
async def health_check():
    """Database round trip."""
    headers = {"Cache-Control": "no-store"}
    try:
        now = db.ping()
    except SQLAlchemyError:
        logger.exception("health_check_failed")
        return JSONResponse(
            {"ok": False, "db": "down", "error": "Internal error"},
            status_code=500,
            headers=headers,
        )

    return JSONResponse(
        {
            "ok": True,
            "db": "up",
            "time": now.isoformat() if hasattr(now, "isoformat") else str(now),
            "env": settings.env,
        },
        headers=headers,
    )


@router.post("/verify-turnstile")
@limiter.limit("30/minute")
async def verify_turnstile(request: Request, body: TurnstileCheckRequest):
    """Standalone human check for pages that gate other actions."""
    if not body.turnstile_token:
        return JSONResponse({"success": False, "error": "missing_token"}, status_code=400)

    success = await turnstile_verifier.verify(body.turnstile_token, client_ip(request))
    return JSONResponse({"success": success}, status_code=200 if success else 403)
