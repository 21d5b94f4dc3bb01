"""
Bike Model

A physical bike from the shared fleet, identified by the number painted on
its frame (numerical_id, chosen by whoever registers it) and optionally by
the alphanumeric code printed in its QR sticker (hash_id).
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    PrimaryKeyConstraint,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from rottenbikes.database import Base
from rottenbikes.utils.timeutils import utcnow


class Bike(Base):
    """
    Bike model.

    Table: bikes

    Attributes:
        numerical_id: Caller-chosen primary key, immutable once created
        hash_id: Optional unique alias
        is_electric: Whether the bike has electric assist
        creator_id: Poster who registered the bike (NULL once they leave)
        created_at / updated_at: Timestamps
    """

    __tablename__ = "bikes"

    numerical_id: Mapped[int] = mapped_column(BigInteger, autoincrement=False)
    hash_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_electric: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    creator_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("posters.poster_id"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    # Named so create_bike() can tell which key collided
    __table_args__ = (
        PrimaryKeyConstraint("numerical_id", name="bikes_pkey"),
        UniqueConstraint("hash_id", name="bikes_hash_id_key"),
    )

    def __repr__(self) -> str:
        return f"<Bike(numerical_id={self.numerical_id}, hash_id={self.hash_id!r})>"
