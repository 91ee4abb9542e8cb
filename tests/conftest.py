"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from datetime import datetime, timezone
from typing import Iterator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.chess.replay import PgnReplayer
from src.chess.rules import PythonChessRules
from src.core.models import TrainingGame
from src.core.shared_types import GameResult, GameSource
from src.db.schema import Base

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
AFTER_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db_session() -> Iterator[Session]:
    """Connection to a test database. Tables are removed at teardown to make unit tests independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def rules() -> PythonChessRules:
    return PythonChessRules()


@pytest.fixture
def replayer(rules: PythonChessRules) -> PgnReplayer:
    return PgnReplayer(rules)


def _make_game(
    game_id: str = "game-1",
    end_time: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc),
    source: GameSource = GameSource.LICHESS,
) -> TrainingGame:
    """Small, valid TrainingGame for tests that do not care about the content."""
    return TrainingGame(
        id=game_id,
        source=source,
        url=f"https://example.org/{game_id}",
        white="Mocker M. Mockerson",
        black="Mock McMock",
        result=GameResult.WHITE_WINS,
        end_time=end_time,
        fens=(STARTING_FEN, AFTER_E4_FEN),
    )


@pytest.fixture
def make_game():
    return _make_game
