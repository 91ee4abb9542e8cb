"""Implementation of TopGamesCache using SQLAlchemy"""

from datetime import timezone
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import CacheReadError, CacheWriteError
from src.core.models import TopGamesCacheEntry
from src.db.schema import DBTopGamesEntry
from src.db.serialization import games_from_json, games_to_json

CACHE_KEY = "top-games"


class SQLTopGamesCache:
    """Cache entry stored in a database table (for deployments sharing one database)"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def load(self) -> Optional[TopGamesCacheEntry]:
        try:
            entry_db = self._fetch_entry()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise CacheReadError(f"Cannot read top games cache: {exc}") from exc
        if entry_db is None:
            return None

        try:
            games = games_from_json(entry_db.games)
        except (ValidationError, TypeError) as exc:
            raise CacheReadError(f"Malformed top games cache row: {exc}") from exc

        cached_at = entry_db.cached_at
        # SQLite drops the timezone on the way back
        if cached_at.tzinfo is None:
            cached_at = cached_at.replace(tzinfo=timezone.utc)
        return TopGamesCacheEntry(cached_at=cached_at, games=games)

    def store(self, entry: TopGamesCacheEntry) -> None:
        try:
            entry_db = self._fetch_entry()
            if entry_db is None:
                entry_db = DBTopGamesEntry(key=CACHE_KEY)
                self.db.add(entry_db)
            entry_db.cached_at = entry.cached_at
            entry_db.games = games_to_json(entry.games)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise CacheWriteError(f"Cannot write top games cache: {exc}") from exc

    def _fetch_entry(self) -> DBTopGamesEntry | None:
        query = select(DBTopGamesEntry).where(DBTopGamesEntry.key == CACHE_KEY)
        return self.db.scalar(query)
