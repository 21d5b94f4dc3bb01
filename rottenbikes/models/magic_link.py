"""
Magic Link Model

Single-use sign-in tokens sent by email.

Lifecycle:
- Pending: consumed_at is NULL and expires_at is in the future
- Consumed: consumed_at is set (terminal). api_token records the bearer
  token handed out, so a client polling with the magic token can pick it up
- Expired: expires_at passed without confirmation (terminal)

Rows are also the ledger for the daily issuance cap: the number of links
created for a poster in the trailing 24 hours is counted from this table.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rottenbikes.database import Base
from rottenbikes.utils.timeutils import utcnow


class MagicLink(Base):
    """
    Magic link model.

    Table: magic_links
    """

    __tablename__ = "magic_links"

    magic_link_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
        comment="32 random bytes, hex encoded",
    )
    poster_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posters.poster_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    api_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="API token issued when this link was confirmed",
    )

    def __repr__(self) -> str:
        return f"MagicLink(id={self.magic_link_id}, poster_id={self.poster_id}, consumed={self.consumed_at is not None})"
