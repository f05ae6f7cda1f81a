"""Application settings and configuration."""

import sys

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_JWT_DEFAULTS = {"change-me-in-production", "secret", "dev-secret"}


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "quantara-waitlist"
    env: str = Field(
        default="development",
        validation_alias=AliasChoices("ENV", "NODE_ENV"),
    )
    log_level: str = "INFO"
    log_format: str = "console"  # console | json
    app_url: str | None = None  # Public site origin, used for links and redirects
    allowed_origins: str = "*"

    # Database
    database_url: str = "sqlite:///./waitlist.db"

    # Email verification credential
    jwt_secret: str = "change-me-in-production"
    jwt_issuer: str = "quantara"
    jwt_audience: str = "user"
    verify_token_ttl_hours: int = 48

    # Cloudflare Turnstile
    turnstile_secret_key: str | None = None
    turnstile_bypass_token: str = "TEST_BYPASS"
    turnstile_verify_url: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify"

    # Email (Resend)
    resend_api_key: str | None = None
    email_from: str = "Quantara <no-reply@quantara.xyz>"

    # Timeouts for outbound calls (seconds)
    external_timeout_seconds: float = 2.0
    node_metrics_url: str | None = None
    node_metrics_timeout_seconds: float = 1.5

    # Network
    chain_name: str = "Devnet-0"
    token_symbol: str = "QTR"
    token_decimals: int = 12
    ss58_prefix: int = 73
    avg_block_seconds: int = 6
    rpc_ws: str = "wss://rpc.devnet-0.quantara.xyz"
    release_at: str = Field(
        default="2025-11-30T17:00:00Z",
        validation_alias=AliasChoices("RELEASE_AT", "Q_RELEASE_AT"),
    )

    # Faucet
    faucet_ip_salt: str = "change-me-in-production"
    faucet_claims_per_hour: int = 1

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def origins(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()

# ── Security validation ──────────────────────────────────────────────
if settings.is_production:
    if settings.jwt_secret in _INSECURE_JWT_DEFAULTS or len(settings.jwt_secret) < 32:
        print(
            "\n❌  FATAL: JWT_SECRET is insecure or too short (min 32 chars).\n"
            "   Set a strong random value:  openssl rand -hex 32\n",
            file=sys.stderr,
        )
        sys.exit(1)
