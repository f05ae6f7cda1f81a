"""Request and response models for the public API."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from waitlist.human.turnstile import TOKEN_FIELDS

TURNSTILE_ALIASES = AliasChoices(*TOKEN_FIELDS)


class JoinRequest(BaseModel):
    """Waitlist signup form."""

    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    role: str = Field(..., min_length=1, max_length=40)
    experience: Literal["New", "Intermediate", "Advanced"] | None = None
    discord: str | None = Field(default=None, max_length=80)
    github: str | None = Field(default=None, max_length=120)
    country: str | None = Field(default=None, max_length=80)

    # Typed by the user / captured from ?ref= by the page script
    referral: str | None = Field(default=None, max_length=64)
    referral_auto: str | None = Field(default=None, max_length=64)

    utm_source: str | None = Field(default=None, max_length=64)
    utm_medium: str | None = Field(default=None, max_length=64)
    utm_campaign: str | None = Field(default=None, max_length=64)
    utm_content: str | None = Field(default=None, max_length=64)
    utm_term: str | None = Field(default=None, max_length=64)

    turnstile_token: str | None = Field(default=None, min_length=5, validation_alias=TURNSTILE_ALIASES)

    def referral_code(self) -> str | None:
        """User-typed code wins over the auto-captured one."""
        for candidate in (self.referral, self.referral_auto):
            if candidate and candidate.strip():
                return candidate.strip()
        return None

    def attribution(self) -> dict[str, str | None]:
        return {
            "source": self.utm_source,
            "medium": self.utm_medium,
            "campaign": self.utm_campaign,
            "content": self.utm_content,
            "term": self.utm_term,
        }


class JoinedUser(BaseModel):
    email: str
    referral_code: str


class JoinResponse(BaseModel):
    ok: bool = True
    id: int
    code: str
    is_new: bool
    email_queued: bool
    user: JoinedUser
    verify_token: str | None = None  # Only outside production


class TurnstileCheckRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    turnstile_token: str | None = Field(default=None, validation_alias=TURNSTILE_ALIASES)
