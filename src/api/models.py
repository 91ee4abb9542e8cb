"""Requests and Response models"""

import math
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.core.exceptions import InvalidRequestError
from src.core.models import EngineAnalysis, Session, TrainingGame
from src.core.shared_types import AnalysisSource, Color, GameResult, GameSource

DEFAULT_GAMES_LIMIT = 15
MAX_GAMES_LIMIT = 50


def clamp_limit(value: Optional[float], default: int = DEFAULT_GAMES_LIMIT) -> int:
    """Bounds-check a requested number of games into [1, MAX_GAMES_LIMIT]. Missing or non-finite: default."""
    if value is None or not math.isfinite(value):
        return default
    return int(max(1, min(MAX_GAMES_LIMIT, value)))


# --- REQUEST MODELS ---
class CreateSessionRequest(BaseModel):
    user_id: str
    initial_fen: Optional[str] = None
    user_color: Color = Color.WHITE

    @field_validator("initial_fen")
    @classmethod
    def validate_initial_fen(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None

        parts = value.strip().split()
        if len(parts) != 6:
            raise InvalidRequestError(
                "FEN string must contain 6 space-separated parts."
            )
        return " ".join(parts)


class SessionRequest(BaseModel):
    session_id: UUID


class MoveRequest(BaseModel):
    session_id: UUID
    move_uci: str

    @field_validator("move_uci")
    @classmethod
    def validate_move_uci(cls, value: str) -> str:
        def _is_algebraic_notation(value: str) -> bool:
            return len(value) == 2 and value[0].isalpha() and value[1].isnumeric()

        value = value.strip()
        if len(value) not in (4, 5):
            raise InvalidRequestError(
                f"Cannot interpret move: {value!r}. Expected e.g. 'e2e4' or 'e7e8q'."
            )
        if not (_is_algebraic_notation(value[0:2]) and _is_algebraic_notation(value[2:4])):
            raise InvalidRequestError(
                f"Cannot interpret squares in move: {value!r} as valid square names."
            )
        if len(value) == 5 and not value[4].isalpha():
            raise InvalidRequestError(
                f"Cannot interpret promotion piece in move: {value!r}."
            )
        return value.lower()


class RecentGamesRequest(BaseModel):
    user_id: str
    limit: Optional[float] = Field(default=None, validate_default=True)

    @field_validator("limit")
    @classmethod
    def clamp(cls, value: Optional[float]) -> int:
        return clamp_limit(value)


class TopGamesRequest(BaseModel):
    limit: Optional[float] = Field(default=None, validate_default=True)

    @field_validator("limit")
    @classmethod
    def clamp(cls, value: Optional[float]) -> int:
        return clamp_limit(value)


# --- RESPONSE MODELS ---
class SessionResponse(BaseModel):
    session_id: UUID
    user_id: str
    initial_fen: str
    current_fen: str
    user_color: Color
    created_at: datetime
    move_history: list[str]

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            session_id=session.id,
            user_id=session.user_id,
            initial_fen=session.initial_fen,
            current_fen=session.current_fen,
            user_color=session.user_color,
            created_at=session.created_at,
            move_history=list(session.move_history),
        )


class AnalysisResponse(BaseModel):
    best_move: str
    evaluation: Optional[int]
    depth: int
    principal_variation: list[str]
    source: AnalysisSource

    @classmethod
    def from_analysis(cls, analysis: EngineAnalysis) -> "AnalysisResponse":
        return cls(
            best_move=analysis.best_move,
            evaluation=analysis.evaluation,
            depth=analysis.depth,
            principal_variation=list(analysis.principal_variation),
            source=analysis.source,
        )


class MoveResponse(BaseModel):
    session: SessionResponse
    engine_move: Optional[str] = None
    analysis: Optional[AnalysisResponse] = None
    explanation: Optional[str] = None


class TrainingGameResponse(BaseModel):
    id: str
    source: GameSource
    url: str
    white: str
    black: str
    result: GameResult
    end_time: datetime
    fens: list[str]

    @classmethod
    def from_game(cls, game: TrainingGame) -> "TrainingGameResponse":
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


class GamesResponse(BaseModel):
    games: list[TrainingGameResponse]

    @classmethod
    def from_games(cls, games: list[TrainingGame]) -> "GamesResponse":
        return cls(games=[TrainingGameResponse.from_game(game) for game in games])
