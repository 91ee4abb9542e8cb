import math
from uuid import UUID, uuid4

import pytest

from src.api.models import (
    CreateSessionRequest,
    MoveRequest,
    RecentGamesRequest,
    TopGamesRequest,
    clamp_limit,
)
from src.core.exceptions import InvalidRequestError
from src.core.shared_types import Color


@pytest.fixture
def mock_id() -> UUID:
    return uuid4()


# -- Validation - CreateSessionRequest --
def test_valid_fen() -> None:
    """Test that CreateSessionRequest accepts a valid FEN string."""

    valid_fen = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
    request = CreateSessionRequest(
        user_id="don't hate the player, hate the name.",
        user_color=Color.BLACK,
        initial_fen=valid_fen,
    )
    assert request.initial_fen == valid_fen
    assert request.user_color == Color.BLACK


def test_initial_fen_is_optional() -> None:
    """Should be able to not supply a starting FEN (or an empty one): validator just returns None."""
    request = CreateSessionRequest(user_id="don't hate the player, hate the name.")
    assert request.initial_fen is None
    assert request.user_color == Color.WHITE

    request = CreateSessionRequest(user_id="player", initial_fen="   ")
    assert request.initial_fen is None


def test_fen_whitespace_is_normalised() -> None:
    request = CreateSessionRequest(
        user_id="player",
        initial_fen="  rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR  w KQkq - 0 1 ",
    )
    assert request.initial_fen == "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


@pytest.mark.parametrize(
    "invalid_fen",
    [
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0",  # only 5 space-separated values
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 extra",  # too many space-separated values
    ],
)
def test_invalid_fen(invalid_fen: str) -> None:
    """Structurally invalid FEN: more or less than 6 space-separated fields."""

    with pytest.raises(InvalidRequestError):
        _ = CreateSessionRequest(
            user_id="don't hate the player, hate the name.",
            initial_fen=invalid_fen,
        )


# -- Validation - MoveRequest --
@pytest.mark.parametrize("move", ["e2e4", "e7e8q", "E2E4", " g1f3 "])
def test_valid_moves(mock_id: UUID, move: str) -> None:
    """Well-formed moves are accepted (and normalised). Legality is not checked here."""
    request = MoveRequest(session_id=mock_id, move_uci=move)
    assert request.move_uci == move.strip().lower()


def test_out_of_board_square_is_well_formed(mock_id: UUID) -> None:
    """e9 looks like a square: rejecting it is up to the rules engine (IllegalMoveError), not validation."""
    assert MoveRequest(session_id=mock_id, move_uci="e2e9").move_uci == "e2e9"


@pytest.mark.parametrize(
    "move",
    [
        "nonsense",  # too long
        "e2",  # too short
        "1234",  # squares must start with a letter
        "eee4",  # second character is not a number
        "e7e81",  # promotion is not a piece letter
    ],
)
def test_invalid_moves(mock_id: UUID, move: str) -> None:
    """Test that an exception is raised when the move cannot be a UCI token."""
    with pytest.raises(InvalidRequestError):
        _ = MoveRequest(session_id=mock_id, move_uci=move)


# -- Validation - limits --
@pytest.mark.parametrize(
    "requested, expected",
    [
        (None, 15),
        (-3, 1),
        (0, 1),
        (1, 1),
        (20, 20),
        (7.9, 7),
        (50, 50),
        (51, 50),
        (10_000, 50),
        (math.nan, 15),
        (math.inf, 15),
        (-math.inf, 15),
    ],
)
def test_clamp_limit(requested, expected: int) -> None:
    assert clamp_limit(requested) == expected


def test_games_requests_clamp_limit() -> None:
    assert RecentGamesRequest(user_id="player", limit=500).limit == 50
    assert RecentGamesRequest(user_id="player").limit == 15
    assert TopGamesRequest(limit=0).limit == 1


def test_games_requests_non_finite_limit() -> None:
    assert RecentGamesRequest(user_id="player", limit=math.nan).limit == 15
    assert TopGamesRequest(limit=math.inf).limit == 15
