"""Orchestration of communication from API router to the session registry and engine layers (and the reverse direction)."""

from typing import Optional, Protocol

from src.api.models import (
    AnalysisResponse,
    CreateSessionRequest,
    MoveRequest,
    MoveResponse,
    SessionRequest,
    SessionResponse,
)
from src.chess.rules import PythonChessRules, RulesEngine
from src.core.config import Settings
from src.core.models import EngineAnalysis
from src.engine.orchestrator import EngineOrchestrator
from src.services.session_registry import SessionRegistry


class MoveExplainer(Protocol):
    """Natural-language explanation collaborator (e.g. an LLM client)."""

    def explain_move(
        self, initial_fen: str, current_fen: str, analysis: EngineAnalysis
    ) -> str:
        """Explain the engine's reply in human terms."""
        ...


class ChessService:
    """Orchestration of layers for practice sessions."""

    def __init__(
        self, registry: SessionRegistry, explainer: Optional[MoveExplainer] = None
    ) -> None:
        self.registry = registry
        self.explainer = explainer

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        rules: Optional[RulesEngine] = None,
        explainer: Optional[MoveExplainer] = None,
    ) -> "ChessService":
        rules = rules or PythonChessRules()
        orchestrator = EngineOrchestrator.from_settings(settings, rules)
        registry = SessionRegistry(rules, orchestrator, engine_depth=settings.engine_depth)
        return cls(registry, explainer)

    # -- API routes logic ---
    def create_session(self, request: CreateSessionRequest) -> SessionResponse:
        """User requested a new practice session."""
        session = self.registry.create(
            user_id=request.user_id,
            initial_fen=request.initial_fen,
            user_color=request.user_color,
        )
        return SessionResponse.from_session(session)

    def get_session(self, request: SessionRequest) -> SessionResponse:
        return SessionResponse.from_session(self.registry.get(request.session_id))

    def reset_session(self, request: SessionRequest) -> SessionResponse:
        return SessionResponse.from_session(self.registry.reset(request.session_id))

    def switch_side(self, request: SessionRequest) -> SessionResponse:
        return SessionResponse.from_session(
            self.registry.switch_side(request.session_id)
        )

    def user_move(self, request: MoveRequest) -> MoveResponse:
        """
        Play the user's move and the engine's reply.
        ----
        The explanation is only requested when the engine actually played a move.
        """
        result = self.registry.apply_user_move(request.session_id, request.move_uci)

        explanation = None
        if self.explainer is not None and result.engine_move and result.analysis:
            explanation = self.explainer.explain_move(
                result.session.initial_fen, result.session.current_fen, result.analysis
            )

        return MoveResponse(
            session=SessionResponse.from_session(result.session),
            engine_move=result.engine_move,
            analysis=(
                AnalysisResponse.from_analysis(result.analysis)
                if result.analysis
                else None
            ),
            explanation=explanation,
        )
