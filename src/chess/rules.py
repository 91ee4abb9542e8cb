"""
Contract with the chess rules collaborator, and its implementation on top of python-chess.

The core never decides legality itself: every move, transcript and position goes through a RulesEngine.
"""

import io
from dataclasses import dataclass, field
from typing import Optional, Protocol

import chess
import chess.pgn

from src.core.exceptions import InvalidRequestError, TranscriptParseError
from src.core.shared_types import Color

STARTING_FEN = chess.STARTING_FEN

# Material values used by the fallback heuristic (king deliberately worthless)
PIECE_VALUES: dict[int, int] = {
    chess.PAWN: 100,
    chess.KNIGHT: 320,
    chess.BISHOP: 330,
    chess.ROOK: 500,
    chess.QUEEN: 900,
    chess.KING: 0,
}
PROMOTION_PIECES = "qrbn"


@dataclass(frozen=True)
class MoveOutcome:
    legal: bool
    resulting_fen: str
    game_over: bool
    side_to_move: Color


@dataclass(frozen=True)
class ParsedTranscript:
    moves: list[str]
    starting_fen_override: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)


class RulesEngine(Protocol):
    """Chess legality collaborator."""

    def apply_move(
        self,
        fen: str,
        from_square: str,
        to_square: str,
        promotion: Optional[str] = None,
    ) -> MoveOutcome:
        """Try a move on the position. Never raises for an illegal/malformed move: legal=False instead."""
        ...

    def parse_transcript(self, text: str) -> ParsedTranscript:
        """Parse a single PGN game into UCI moves. Raises TranscriptParseError."""
        ...

    def normalize_fen(self, fen: str) -> str:
        """Validate a FEN and return its canonical form. Raises InvalidRequestError."""
        ...

    def legal_moves(self, fen: str) -> list[str]:
        """All legal moves (UCI), in generation order."""
        ...

    def material_balance(self, fen: str) -> int:
        """Signed sum of piece values, from White's perspective."""
        ...


def split_uci(move_uci: str) -> tuple[str, str, Optional[str]]:
    """Split a 4 or 5 character token into (from, to, promotion)."""
    if len(move_uci) not in (4, 5):
        raise InvalidRequestError(f"Move token must have 4 or 5 characters: {move_uci!r}")
    promotion = move_uci[4] if len(move_uci) == 5 else None
    return move_uci[0:2], move_uci[2:4], promotion


class PythonChessRules:
    """RulesEngine backed by the python-chess library."""

    def apply_move(
        self,
        fen: str,
        from_square: str,
        to_square: str,
        promotion: Optional[str] = None,
    ) -> MoveOutcome:
        board = self._board(fen)
        rejected = MoveOutcome(
            legal=False,
            resulting_fen=board.fen(),
            game_over=board.is_game_over(),
            side_to_move=_color(board.turn),
        )
        try:
            move = chess.Move(
                chess.parse_square(from_square),
                chess.parse_square(to_square),
                promotion=_promotion_piece(promotion),
            )
        except ValueError:
            return rejected

        if not board.is_legal(move):
            return rejected

        board.push(move)
        return MoveOutcome(
            legal=True,
            resulting_fen=board.fen(),
            game_over=board.is_game_over(),
            side_to_move=_color(board.turn),
        )

    def parse_transcript(self, text: str) -> ParsedTranscript:
        try:
            game = chess.pgn.read_game(io.StringIO(text))
        except (ValueError, KeyError) as exc:
            raise TranscriptParseError(f"Could not read transcript: {exc}") from exc

        if game is None:
            raise TranscriptParseError("Transcript contains no game.")
        if game.errors:
            raise TranscriptParseError(f"Transcript has errors: {game.errors[0]}")

        moves = [move.uci() for move in game.mainline_moves()]
        if not moves:
            raise TranscriptParseError("Transcript contains no moves.")

        headers = dict(game.headers)
        starting_fen = headers.get("FEN") or None
        return ParsedTranscript(
            moves=moves,
            starting_fen_override=starting_fen,
            headers=headers,
        )

    def normalize_fen(self, fen: str) -> str:
        try:
            board = chess.Board(fen)
        except ValueError as exc:
            raise InvalidRequestError(f"Invalid FEN {fen!r}: {exc}") from exc
        if not board.is_valid():
            raise InvalidRequestError(f"FEN describes an impossible position: {fen!r}")
        return board.fen()

    def legal_moves(self, fen: str) -> list[str]:
        return [move.uci() for move in self._board(fen).legal_moves]

    def material_balance(self, fen: str) -> int:
        balance = 0
        for piece in self._board(fen).piece_map().values():
            value = PIECE_VALUES[piece.piece_type]
            balance += value if piece.color == chess.WHITE else -value
        return balance

    # -- Internal helpers --
    def _board(self, fen: str) -> chess.Board:
        try:
            return chess.Board(fen)
        except ValueError as exc:
            raise InvalidRequestError(f"Invalid FEN {fen!r}: {exc}") from exc


def _color(turn: chess.Color) -> Color:
    return Color.WHITE if turn == chess.WHITE else Color.BLACK


def _promotion_piece(symbol: Optional[str]) -> Optional[chess.PieceType]:
    if symbol is None:
        return None
    if symbol.lower() not in PROMOTION_PIECES:
        raise ValueError(f"Not a promotion piece: {symbol!r}")
    return chess.Piece.from_symbol(symbol.lower()).piece_type
