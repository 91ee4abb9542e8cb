"""
Boundary layer data model(s).

These objects are passed between the service, engine, ingestion and persistence layers.
The API layer converts them into its own pydantic response models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from src.core.shared_types import AnalysisSource, Color, GameResult, GameSource

# Encodes a forced mate as a centipawn value: +/-(MATE_SCORE - plies to mate)
MATE_SCORE = 100_000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def mate_to_centipawns(mate_in: int) -> int:
    """Convert a 'mate in N' score (sign = side delivering mate) into the large-magnitude centipawn sentinel."""
    if mate_in > 0:
        return MATE_SCORE - mate_in
    # mate in 0 / negative: the side to move is getting mated
    return -MATE_SCORE - mate_in


@dataclass
class Session:
    """A single practice game against the engine. Mutated in place by the SessionRegistry only."""

    id: UUID
    user_id: str
    initial_fen: str
    current_fen: str
    user_color: Color
    created_at: datetime = field(default_factory=utc_now)
    move_history: list[str] = field(default_factory=list)


@dataclass
class EngineAnalysis:
    """Result of analysing one position. Evaluation is in centipawns, from the side to move's perspective."""

    best_move: str
    evaluation: Optional[int]
    depth: int
    principal_variation: list[str]
    source: AnalysisSource

    @classmethod
    def empty(cls, source: AnalysisSource, depth: int = 0) -> "EngineAnalysis":
        return cls(
            best_move="",
            evaluation=None,
            depth=depth,
            principal_variation=[],
            source=source,
        )


@dataclass(frozen=True)
class TrainingGame:
    """Historical game, expanded into one FEN per ply (fens[0] is the starting position)."""

    id: str
    source: GameSource
    url: str
    white: str
    black: str
    result: GameResult
    end_time: datetime
    fens: tuple[str, ...]


@dataclass(frozen=True)
class TopGamesCacheEntry:
    cached_at: datetime
    games: tuple[TrainingGame, ...]

    def is_fresh(self, now: datetime, ttl_seconds: float) -> bool:
        """An entry may only be served while it is younger than the TTL."""
        return (now - self.cached_at).total_seconds() < ttl_seconds


@dataclass(frozen=True)
class LinkedAccounts:
    """External game-provider accounts a user linked in their profile."""

    lichess_username: Optional[str] = None
    chess_com_username: Optional[str] = None
