"""
In-memory registry of practice sessions (user vs. engine).

The registry owns the only mapping from session id to Session. All mutation goes through its methods.
NOTE: calls for one session id are expected to be serialized by the caller. Different sessions never share state.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID, uuid4

from src.chess.rules import STARTING_FEN, RulesEngine, split_uci
from src.core.exceptions import IllegalMoveError, InvalidRequestError, SessionNotFoundError
from src.core.models import EngineAnalysis, Session
from src.core.shared_types import Color
from src.engine.orchestrator import EngineOrchestrator

_log = logging.getLogger(__name__)

DEFAULT_ENGINE_DEPTH = 14


@dataclass
class MoveResult:
    """Outcome of a user move: the updated session plus the engine's reply, if it played one."""

    session: Session
    engine_move: Optional[str] = None
    analysis: Optional[EngineAnalysis] = None


class SessionRegistry:
    def __init__(
        self,
        rules: RulesEngine,
        orchestrator: EngineOrchestrator,
        engine_depth: int = DEFAULT_ENGINE_DEPTH,
    ) -> None:
        self.rules = rules
        self.orchestrator = orchestrator
        self.engine_depth = engine_depth
        self._sessions: dict[UUID, Session] = {}

    def create(
        self,
        user_id: str,
        initial_fen: Optional[str] = None,
        user_color: Color = Color.WHITE,
    ) -> Session:
        """Register a new session, starting from the standard position unless a FEN is supplied."""
        fen = self.rules.normalize_fen(initial_fen) if initial_fen else STARTING_FEN
        session = Session(
            id=uuid4(),
            user_id=user_id,
            initial_fen=fen,
            current_fen=fen,
            user_color=Color(user_color),
        )
        self._sessions[session.id] = session
        return session

    def get(self, session_id: UUID) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session with {session_id=} not found.")
        return session

    def reset(self, session_id: UUID) -> Session:
        """Back to the initial position, with an empty history. The user keeps their color."""
        session = self.get(session_id)
        session.current_fen = session.initial_fen
        session.move_history = []
        return session

    def switch_side(self, session_id: UUID) -> Session:
        session = self.reset(session_id)
        session.user_color = session.user_color.opponent
        return session

    def apply_user_move(self, session_id: UUID, move_uci: str) -> MoveResult:
        """
        Play the user's move, then (if it became the engine's turn) at most one engine reply.
        ----
        1. validate + apply the user's move (IllegalMoveError leaves the session untouched)
        2. game not over and engine to move? ask the orchestrator for a move
        3. apply the engine's move if the rules engine accepts it
        """
        session = self.get(session_id)
        try:
            from_square, to_square, promotion = split_uci(move_uci)
        except InvalidRequestError as exc:
            raise IllegalMoveError(f"Illegal move: {move_uci}") from exc

        outcome = self.rules.apply_move(
            session.current_fen, from_square, to_square, promotion
        )
        if not outcome.legal:
            raise IllegalMoveError(f"Illegal move: {move_uci}")

        session.move_history.append(move_uci)
        session.current_fen = outcome.resulting_fen
        result = MoveResult(session=session)

        if outcome.game_over or outcome.side_to_move == session.user_color:
            return result

        analysis = self.orchestrator.analyze(session.current_fen, self.engine_depth)
        result.analysis = analysis
        if analysis.best_move:
            self._apply_engine_move(session, analysis.best_move, result)
        return result

    # -- Internal helpers --
    def _apply_engine_move(
        self, session: Session, move_uci: str, result: MoveResult
    ) -> None:
        try:
            from_square, to_square, promotion = split_uci(move_uci)
        except InvalidRequestError:
            _log.warning("Engine suggested a malformed move %r, ignoring it.", move_uci)
            return

        outcome = self.rules.apply_move(
            session.current_fen, from_square, to_square, promotion
        )
        if not outcome.legal:
            _log.warning(
                "Engine suggested illegal move %r in %r, ignoring it.",
                move_uci,
                session.current_fen,
            )
            return

        session.move_history.append(move_uci)
        session.current_fen = outcome.resulting_fen
        result.engine_move = move_uci
