"""Database tables / schema"""

from datetime import datetime

from sqlalchemy import JSON, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.core.models import utc_now


class Base(DeclarativeBase):
    pass


class DBTopGamesEntry(Base):
    """Single-row table: the whole entry is replaced on every refresh."""

    __tablename__ = "top_games_cache"
    key: Mapped[str] = mapped_column(primary_key=True)
    cached_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    games: Mapped[list[dict]] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
