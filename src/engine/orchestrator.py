"""
Engine analysis orchestration: an ordered list of tiers (local UCI process, cloud evaluation, material fallback),
tried one after the other until one produces a result.

`EngineOrchestrator.analyze` never raises.
"""

import logging
from typing import Optional, Protocol, Sequence

from src.chess.rules import RulesEngine
from src.core.config import Settings
from src.core.models import EngineAnalysis
from src.core.shared_types import AnalysisSource
from src.engine.cloud import CloudEvalTier
from src.engine.fallback import MaterialFallbackTier
from src.engine.uci_client import UciProcessClient

_log = logging.getLogger(__name__)


class AnalysisTier(Protocol):
    """One way of analysing a position. Raises on failure, the orchestrator moves on to the next tier."""

    source: AnalysisSource

    def analyze(self, fen: str, max_depth: int) -> EngineAnalysis: ...


class LocalEngineTier:
    """Spawns a fresh UCI engine process for every analysis."""

    source = AnalysisSource.LOCAL

    def __init__(
        self,
        command: Sequence[str],
        timeout_s: float = 10.0,
        movetime_ms: Optional[int] = None,
    ) -> None:
        self.command = list(command)
        self.timeout_s = timeout_s
        self.movetime_ms = movetime_ms

    def analyze(self, fen: str, max_depth: int) -> EngineAnalysis:
        client = UciProcessClient(self.command, timeout_s=self.timeout_s)
        if self.movetime_ms is not None:
            return client.run(fen, movetime_ms=self.movetime_ms)
        return client.run(fen, depth=max_depth)


class EngineOrchestrator:
    def __init__(self, tiers: Sequence[AnalysisTier]) -> None:
        self.tiers = list(tiers)

    @classmethod
    def from_settings(
        cls, settings: Settings, rules: RulesEngine
    ) -> "EngineOrchestrator":
        """Local tier only with STOCKFISH_PATH, cloud tier only with a cloud URL, fallback always last."""
        tiers: list[AnalysisTier] = []
        if settings.stockfish_path:
            tiers.append(
                LocalEngineTier(
                    [settings.stockfish_path],
                    timeout_s=settings.engine_timeout_s,
                )
            )
        if settings.cloud_eval_url:
            tiers.append(
                CloudEvalTier(settings.cloud_eval_url, timeout_s=settings.http_timeout_s)
            )
        tiers.append(MaterialFallbackTier(rules))
        return cls(tiers)

    def analyze(self, fen: str, max_depth: int) -> EngineAnalysis:
        """Return the first tier's result that succeeds. Falls back to an empty analysis if every tier fails."""
        for tier in self.tiers:
            try:
                analysis = tier.analyze(fen, max_depth)
            except Exception as exc:  # any tier failure means: try the next one
                _log.warning("Engine tier %r failed for %r: %s", tier.source, fen, exc)
                continue
            analysis.source = tier.source
            return analysis

        _log.error("All engine tiers failed for %r", fen)
        return EngineAnalysis.empty(AnalysisSource.FALLBACK)
