"""
Wire format of cached top games: {"cachedAt": <ISO-8601>, "games": [TrainingGame, ...]} with camelCase keys.
"""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.models import TopGamesCacheEntry, TrainingGame
from src.core.shared_types import GameResult, GameSource


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _assume_utc(value: datetime) -> datetime:
    """Timestamps written without an offset are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


class CachedTrainingGame(_CamelModel):
    id: str
    source: GameSource
    url: str
    white: str
    black: str
    result: GameResult
    end_time: UtcDatetime
    fens: list[str] = Field(min_length=1)

    @classmethod
    def from_game(cls, game: TrainingGame) -> "CachedTrainingGame":
        return cls(
            id=game.id,
            source=game.source,
            url=game.url,
            white=game.white,
            black=game.black,
            result=game.result,
            end_time=game.end_time,
            fens=list(game.fens),
        )

    def to_game(self) -> TrainingGame:
        return TrainingGame(
            id=self.id,
            source=self.source,
            url=self.url,
            white=self.white,
            black=self.black,
            result=self.result,
            end_time=self.end_time,
            fens=tuple(self.fens),
        )


class CachedTopGames(_CamelModel):
    cached_at: UtcDatetime
    games: list[CachedTrainingGame]

    @classmethod
    def from_entry(cls, entry: TopGamesCacheEntry) -> "CachedTopGames":
        return cls(
            cached_at=entry.cached_at,
            games=[CachedTrainingGame.from_game(game) for game in entry.games],
        )

    def to_entry(self) -> TopGamesCacheEntry:
        return TopGamesCacheEntry(
            cached_at=self.cached_at,
            games=tuple(game.to_game() for game in self.games),
        )


def games_to_json(games: tuple[TrainingGame, ...]) -> list[dict]:
    """JSON-ready list of games (used by the SQL cache's JSON column)."""
    return [
        CachedTrainingGame.from_game(game).model_dump(mode="json", by_alias=True)
        for game in games
    ]


def games_from_json(data: list[dict]) -> tuple[TrainingGame, ...]:
    return tuple(CachedTrainingGame.model_validate(item).to_game() for item in data)
