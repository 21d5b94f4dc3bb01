"""
Email Service

Delivers magic links to posters.

Senders:
========
- MailtrapSender: POSTs to the Mailtrap send API with httpx
- LoggingSender: Writes the message to the log instead of sending it.
  Used when no EMAIL_SENDER_TOKEN_MAILTRAP is configured (local development)

Routers get a sender through the get_email_sender dependency, which tests
override with a recording fake.
"""

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from urllib.parse import urlencode

import httpx

from rottenbikes.config import get_settings
from rottenbikes.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)
settings = get_settings()

REGISTRATION_SUBJECT = "Welcome to RottenBikes!"
MAGIC_LINK_SUBJECT = "Your RottenBikes Magic Link"


# =============================================================================
# Senders
# =============================================================================


class EmailSender(ABC):
    """Interface every email sender implements."""

    name = "base"

    @abstractmethod
    def send_email(self, to: str, subject: str, body: str) -> None:
        """
        Send a plain text email.

        Raises:
            EmailDeliveryError: If the message could not be handed over
        """


class LoggingSender(EmailSender):
    name = "noop"

    def send_email(self, to: str, subject: str, body: str) -> None:
        logger.info(f"Email to {to} not sent (no provider configured): {subject}\n{body}")


class MailtrapSender(EmailSender):
    """Sends through the Mailtrap transactional email API."""

    name = "mailtrap"

    def __init__(
        self,
        token: str,
        from_email: str,
        from_name: str,
        api_url: str = "https://send.api.mailtrap.io/api/send",
        category: str = "Auth",
        timeout: float = 10.0,
    ) -> None:
        self.token = token
        self.from_email = from_email
        self.from_name = from_name
        self.api_url = api_url
        self.category = category
        self.timeout = timeout

    def send_email(self, to: str, subject: str, body: str) -> None:
        payload = {
            "from": {"email": self.from_email, "name": self.from_name},
            "to": [{"email": to}],
            "subject": subject,
            "text": body,
            "category": self.category,
        }
        try:
            response = httpx.post(
                self.api_url,
                json=payload,
                headers={"Api-Token": self.token},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.error(f"Mailtrap request to {to} failed: {exc}")
            raise EmailDeliveryError() from exc

        if response.is_error:
            logger.error(
                f"Mailtrap returned {response.status_code} for {to}: {response.text}"
            )
            raise EmailDeliveryError()


@lru_cache
def get_email_sender() -> EmailSender:
    """
    Build the configured sender once per process.

    Returns:
        MailtrapSender when a token is configured, LoggingSender otherwise
    """
    if settings.email_sender_token:
        logger.info("Email delivery via Mailtrap")
        return MailtrapSender(
            token=settings.email_sender_token,
            from_email=settings.email_from_address,
            from_name=settings.email_from_name,
            api_url=settings.email_api_url,
            timeout=settings.email_timeout_seconds,
        )

    logger.warning("EMAIL_SENDER_TOKEN_MAILTRAP not set - emails will only be logged")
    return LoggingSender()


# =============================================================================
# Messages
# =============================================================================


def build_confirmation_url(magic_token: str, origin: str | None = None) -> str:
    """
    URL of the UI page that confirms a magic link.

    Example:
        build_confirmation_url("ab12...", "app")
        -> "http://localhost:8081/confirm/ab12...?origin=app"
    """
    url = f"{settings.ui_base_url}/confirm/{magic_token}"
    if origin:
        url = f"{url}?{urlencode({'origin': origin})}"
    return url


def registration_body(username: str, confirmation_url: str) -> str:
    return (
        f"Hello {username},\n\n"
        "Please confirm your registration by clicking the following link:\n\n"
        f"{confirmation_url}\n\n"
        "If you did not request this, please ignore this email."
    )


def magic_link_body(confirmation_url: str) -> str:
    return (
        "Hello,\n\n"
        "You requested a magic link to log in to RottenBikes. "
        "Click the following link to continue:\n\n"
        f"{confirmation_url}\n\n"
        "If you did not request this, please ignore this email."
    )
