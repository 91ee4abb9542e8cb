"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


class AnalysisSource(StrEnum):
    """Which tier of the engine orchestrator produced an analysis."""

    LOCAL = "local"
    CLOUD = "cloud"
    FALLBACK = "fallback"


class GameSource(StrEnum):
    LICHESS = "lichess"
    CHESS_COM = "chess.com"


class GameResult(StrEnum):
    WHITE_WINS = "1-0"
    BLACK_WINS = "0-1"
    DRAW = "½-½"
    ONGOING = "ongoing"
