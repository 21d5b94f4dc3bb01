"""
Poster Model

A poster is an account that can create bikes and write reviews. There are
no passwords: a poster signs in by confirming an emailed magic link, which
hands out a long-lived API token used as a bearer credential.

Business Rules:
- email and username are both unique
- username is restricted to letters, digits and dots
- api_token and api_token_expires_at are set and cleared together
- email_verified flips to True on the first confirmed magic link and never reverts
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rottenbikes.database import Base
from rottenbikes.utils.timeutils import utcnow


class Poster(Base):
    """
    Poster model.

    Table: posters

    Attributes:
        poster_id: Primary key
        email: Unique email address, the magic link destination
        username: Unique public handle shown next to reviews
        api_token: Current bearer token (64 hex chars), None until first issued
        api_token_expires_at: Expiry of api_token
        email_verified: True once a magic link has been confirmed
        created_at: When the account was registered
    """

    __tablename__ = "posters"

    poster_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(64), nullable=False)

    # -------------------------------------------------------------------------
    # Bearer credential
    # -------------------------------------------------------------------------
    api_token: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
        index=True,
        comment="Long-lived bearer token issued on magic link requests",
    )
    api_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    # Constraint names are part of the contract: register() maps integrity
    # errors back to EmailAlreadyExists / UsernameAlreadyExists by name.
    __table_args__ = (
        UniqueConstraint("email", name="posters_email_key"),
        UniqueConstraint("username", name="posters_username_key"),
    )

    def __repr__(self) -> str:
        return f"<Poster(poster_id={self.poster_id}, username='{self.username}')>"
