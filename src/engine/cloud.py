"""
Remote evaluation tier: looks the position up in a cloud evaluation service (Lichess cloud-eval API by default).
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from src.core.exceptions import EngineTierError
from src.core.models import EngineAnalysis, mate_to_centipawns
from src.core.shared_types import AnalysisSource

_log = logging.getLogger(__name__)


# --- Payload schema ---
class CloudPrincipalVariation(BaseModel):
    moves: str = Field(min_length=1)
    cp: Optional[int] = None
    mate: Optional[int] = None
    depth: Optional[int] = None


class CloudEvalPayload(BaseModel):
    pvs: list[CloudPrincipalVariation] = Field(min_length=1)
    depth: Optional[int] = None


class CloudEvalTier:
    """Engine tier backed by an HTTP evaluation endpoint. Scores are reported from White's perspective."""

    source = AnalysisSource.CLOUD

    def __init__(
        self,
        url: str,
        timeout_s: float = 10.0,
        multi_pv: int = 1,
        variant: str = "standard",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout_s = timeout_s
        self.multi_pv = multi_pv
        self.variant = variant
        self._transport = transport

    def analyze(self, fen: str, max_depth: int) -> EngineAnalysis:
        params = {
            "fen": fen,
            "multiPv": self.multi_pv,
            "depth": max_depth,
            "variant": self.variant,
        }
        try:
            with httpx.Client(timeout=self.timeout_s, transport=self._transport) as client:
                response = client.get(self.url, params=params)
        except httpx.HTTPError as exc:
            raise EngineTierError(f"Cloud evaluation request failed: {exc}") from exc

        if response.status_code != 200:
            raise EngineTierError(
                f"Cloud evaluation answered {response.status_code} for {fen!r}"
            )

        try:
            payload = CloudEvalPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise EngineTierError(f"Malformed cloud evaluation payload: {exc}") from exc

        return self._to_analysis(fen, payload, max_depth)

    def _to_analysis(
        self, fen: str, payload: CloudEvalPayload, max_depth: int
    ) -> EngineAnalysis:
        best_line = payload.pvs[0]
        moves = best_line.moves.split()
        if not moves:
            raise EngineTierError("Cloud evaluation returned an empty principal variation.")

        if best_line.cp is not None:
            evaluation: Optional[int] = best_line.cp
        elif best_line.mate is not None:
            evaluation = mate_to_centipawns(best_line.mate)
        else:
            evaluation = None

        # White's perspective -> side to move
        if evaluation is not None and _black_to_move(fen):
            evaluation = -evaluation

        return EngineAnalysis(
            best_move=moves[0],
            evaluation=evaluation,
            depth=best_line.depth or payload.depth or max_depth,
            principal_variation=moves,
            source=self.source,
        )


def _black_to_move(fen: str) -> bool:
    fields = fen.split()
    return len(fields) > 1 and fields[1] == "b"
