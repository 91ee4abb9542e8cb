"""TopGamesCache stored as a single JSON file on local disk."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from src.core.exceptions import CacheReadError, CacheWriteError
from src.core.models import TopGamesCacheEntry
from src.db.serialization import CachedTopGames

_log = logging.getLogger(__name__)


class JsonFileTopGamesCache:
    """
    File-backed cache entry.
    ----
    Writes go to a temporary file in the same directory which then replaces the cache file,
    so a reader never observes a half-written entry (concurrent refreshes simply overwrite each other).
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> Optional[TopGamesCacheEntry]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheReadError(f"Cannot read cache file {self.path}: {exc}") from exc

        try:
            return CachedTopGames.model_validate_json(raw).to_entry()
        except ValidationError as exc:
            raise CacheReadError(f"Malformed cache file {self.path}: {exc}") from exc

    def store(self, entry: TopGamesCacheEntry) -> None:
        payload = CachedTopGames.from_entry(entry).model_dump_json(by_alias=True)
        try:
            self._replace_file(payload)
        except OSError as exc:
            raise CacheWriteError(f"Cannot write cache file {self.path}: {exc}") from exc
        _log.debug("Stored %d top games in %s", len(entry.games), self.path)

    def _replace_file(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
