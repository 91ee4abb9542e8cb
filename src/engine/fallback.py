"""
Last-resort engine tier: a one-ply material count. Always answers, so the orchestrator always has a result.
"""

from typing import Optional

from src.chess.rules import RulesEngine, split_uci
from src.core.models import EngineAnalysis
from src.core.shared_types import AnalysisSource, Color


class MaterialFallbackTier:
    source = AnalysisSource.FALLBACK

    def __init__(self, rules: RulesEngine) -> None:
        self.rules = rules

    def analyze(self, fen: str, max_depth: int) -> EngineAnalysis:
        """
        Pick the legal move that leaves the side to move with the most material.
        ----
        Every legal move is applied and the resulting position scored (White's perspective, flipped for Black).
        Only a strictly better score replaces the current choice, so ties go to the first move generated.
        """
        best_move = ""
        best_score: Optional[int] = None

        for move_uci in self.rules.legal_moves(fen):
            from_square, to_square, promotion = split_uci(move_uci)
            outcome = self.rules.apply_move(fen, from_square, to_square, promotion)
            if not outcome.legal:
                continue

            # after our move it is the opponent's turn
            mover = outcome.side_to_move.opponent
            balance = self.rules.material_balance(outcome.resulting_fen)
            score = balance if mover == Color.WHITE else -balance

            if best_score is None or score > best_score:
                best_move, best_score = move_uci, score

        if not best_move:
            return EngineAnalysis.empty(self.source)

        return EngineAnalysis(
            best_move=best_move,
            evaluation=best_score,
            depth=1,
            principal_variation=[best_move],
            source=self.source,
        )
