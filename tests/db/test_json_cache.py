"""Unit tests for src/db/json_cache.py"""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.core.exceptions import CacheReadError, CacheWriteError
from src.core.models import TopGamesCacheEntry
from src.core.shared_types import GameResult, GameSource
from src.db.json_cache import JsonFileTopGamesCache

CACHED_AT = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)


def test_load_missing_file(tmp_path: Path) -> None:
    """Nothing stored yet is a plain miss, not an error."""
    cache = JsonFileTopGamesCache(tmp_path / "cache.json")
    assert cache.load() is None


def test_store_then_load(tmp_path: Path, make_game) -> None:
    cache = JsonFileTopGamesCache(tmp_path / "nested" / "cache.json")
    entry = TopGamesCacheEntry(
        cached_at=CACHED_AT,
        games=(
            make_game("lichess-abc"),
            make_game("chesscom-xyz", source=GameSource.CHESS_COM),
        ),
    )
    cache.store(entry)
    assert cache.load() == entry


def test_file_format(tmp_path: Path, make_game) -> None:
    """camelCase keys, ISO-8601 timestamps."""
    path = tmp_path / "cache.json"
    JsonFileTopGamesCache(path).store(
        TopGamesCacheEntry(cached_at=CACHED_AT, games=(make_game("lichess-abc"),))
    )

    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"cachedAt", "games"}
    assert datetime.fromisoformat(data["cachedAt"]) == CACHED_AT
    game = data["games"][0]
    assert game["id"] == "lichess-abc"
    assert game["source"] == "lichess"
    assert game["result"] == GameResult.WHITE_WINS
    assert "endTime" in game
    assert len(game["fens"]) == 2


def test_store_replaces_whole_entry(tmp_path: Path, make_game) -> None:
    cache = JsonFileTopGamesCache(tmp_path / "cache.json")
    cache.store(TopGamesCacheEntry(cached_at=CACHED_AT, games=(make_game("a"), make_game("b"))))
    newer = TopGamesCacheEntry(cached_at=datetime.now(timezone.utc), games=(make_game("c"),))
    cache.store(newer)

    assert cache.load() == newer
    # no temporary files left behind
    assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]


@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        "{}",
        '{"cachedAt": "yesterday", "games": []}',
        '{"cachedAt": "2024-03-01T12:30:00+00:00", "games": [{"id": "missing fields"}]}',
    ],
)
def test_load_malformed_file(tmp_path: Path, content: str) -> None:
    path = tmp_path / "cache.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(CacheReadError):
        JsonFileTopGamesCache(path).load()


def test_timestamps_without_offset_are_utc(tmp_path: Path) -> None:
    """A file written by another tool without UTC offsets still yields comparable timestamps."""
    path = tmp_path / "cache.json"
    game = {
        "id": "lichess-abc",
        "source": "lichess",
        "url": "https://lichess.org/abc",
        "white": "Alice",
        "black": "Bob",
        "result": "1-0",
        "endTime": "2024-06-01T10:00:00",
        "fens": ["rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"],
    }
    path.write_text(json.dumps({"cachedAt": "2024-06-01T11:00:00", "games": [game]}), encoding="utf-8")

    entry = JsonFileTopGamesCache(path).load()
    assert entry is not None
    assert entry.cached_at == datetime(2024, 6, 1, 11, tzinfo=timezone.utc)
    assert entry.games[0].end_time == datetime(2024, 6, 1, 10, tzinfo=timezone.utc)
    assert entry.is_fresh(datetime(2024, 6, 1, 12, tzinfo=timezone.utc), ttl_seconds=6 * 3600)


def test_store_into_unusable_directory(tmp_path: Path, make_game) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")
    cache = JsonFileTopGamesCache(blocker / "cache.json")
    with pytest.raises(CacheWriteError):
        cache.store(TopGamesCacheEntry(cached_at=CACHED_AT, games=(make_game("a"),)))
