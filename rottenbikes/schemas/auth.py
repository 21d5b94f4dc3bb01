"""
Authentication Pydantic Schemas

Request and response bodies for the magic link flow.

Schemas:
- RegisterRequest: Create an account and email the first magic link
- MagicLinkRequest: Email a magic link to an existing poster
- MagicLinkSentResponse: Acknowledgement carrying the magic token for polling
- ConfirmResponse: API token handed out on confirmation
- PollResponse: API token once the magic link has been confirmed
- VerifyResponse: Identity behind a Bearer token

Username and email formats are checked by services.auth.register so the
same rules apply however a poster is created.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RegisterRequest(BaseModel):
    """
    Registration request.

    Example request body:
    {
        "username": "alice.rides",
        "email": "alice@example.com",
        "origin": "app"
    }
    """

    username: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Letters, numbers and dots only",
        examples=["alice.rides"],
    )
    email: str = Field(
        ...,
        min_length=3,
        max_length=255,
        description="Address the magic link is sent to",
        examples=["alice@example.com"],
    )
    origin: str | None = Field(
        default=None,
        max_length=64,
        description="Echoed back as ?origin= on the confirmation URL",
    )


class MagicLinkRequest(BaseModel):
    """
    Magic link request. Either email or username identifies the poster;
    email wins when both are given.
    """

    email: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=64)
    origin: str | None = Field(default=None, max_length=64)

    @field_validator("email", "username")
    @classmethod
    def blank_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def require_identifier(self) -> "MagicLinkRequest":
        if not self.email and not self.username:
            raise ValueError("email or username is required")
        return self


class MagicLinkSentResponse(BaseModel):
    message: str = Field(..., examples=["magic link email sent"])
    magic_token: str = Field(..., description="Poll /auth/poll with this token")


class ConfirmResponse(BaseModel):
    api_token: str = Field(..., description="Bearer token for authenticated requests")
    email: str
    api_token_expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PollResponse(BaseModel):
    api_token: str


class VerifyResponse(BaseModel):
    poster_id: int
    username: str
    status: str = "ok"
