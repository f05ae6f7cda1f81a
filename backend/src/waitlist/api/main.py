"""Main FastAPI application for the waitlist API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from waitlist import __version__
from waitlist.api.rate_limit import limiter
from waitlist.api.v1.leaderboard import router as leaderboard_router
from waitlist.api.v1.site import router as site_router
from waitlist.api.v1.waitlist import router as waitlist_router
from waitlist.errors import WaitlistError
from waitlist.logging_config import configure_logging, get_logger
from waitlist.settings import settings
from waitlist.storage.db import db

logger = get_logger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    configure_logging()
    logger.info("app_starting", env=settings.env)

    db.create_tables()
    logger.info("database_tables_created")

    yield

    # Shutdown
    logger.info("app_shutting_down")


def _validation_details(exc: RequestValidationError) -> list[dict]:
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI app
    """
    is_production = settings.is_production

    app = FastAPI(
        title="Waitlist API",
        description="Devnet waitlist signup, referral attribution and leaderboard",
        version=__version__,
        docs_url=None if is_production else "/api/docs",
        redoc_url=None if is_production else "/api/redoc",
        openapi_url=None if is_production else "/api/openapi.json",
        lifespan=lifespan,
    )

    allowed_origins = settings.origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        # Browsers reject credentials alongside a wildcard origin
        allow_credentials="*" not in allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        max_age=86400,
    )

    # Rate limiting (shared instance from rate_limit module)
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={"ok": False, "error": "Too many requests. Please try again later."},
            headers=NO_STORE,
        )

    @app.exception_handler(WaitlistError)
    async def waitlist_error_handler(request: Request, exc: WaitlistError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
        else:
            logger.info("request_rejected", path=request.url.path, status=exc.status_code, error=exc.public_message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "error": exc.public_message},
            headers=NO_STORE,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": "Invalid payload", "details": _validation_details(exc)},
            headers=NO_STORE,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "Internal error"},
            headers=NO_STORE,
        )

    app.include_router(waitlist_router, prefix="/api")
    app.include_router(leaderboard_router, prefix="/api")
    app.include_router(site_router, prefix="/api")

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": __version__,
            "docs": None if is_production else "/api/docs",
        }

    return app


# Create app instance
app = create_app()
