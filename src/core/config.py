"""
Runtime configuration, read from environment variables.

Defaults mirror a development setup: no local engine (cloud evaluation and the material heuristic still answer),
and a JSON cache file in the working directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_CLOUD_EVAL_URL = "https://lichess.org/api/cloud-eval"
DEFAULT_LICHESS_URL = "https://lichess.org"
DEFAULT_CHESS_COM_URL = "https://api.chess.com"


@dataclass(frozen=True)
class Settings:
    stockfish_path: Optional[str] = None
    engine_depth: int = 14
    engine_timeout_s: float = 10.0
    cloud_eval_url: Optional[str] = DEFAULT_CLOUD_EVAL_URL
    http_timeout_s: float = 10.0
    lichess_url: str = DEFAULT_LICHESS_URL
    chess_com_url: str = DEFAULT_CHESS_COM_URL
    top_games_cache_path: Path = Path("top_games_cache.json")
    top_games_ttl_hours: float = 6.0
    top_games_min_count: int = 5
    top_player_perf: str = "blitz"

    @property
    def top_games_ttl_seconds(self) -> float:
        return self.top_games_ttl_hours * 3600

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment. An empty CLOUD_EVAL_URL disables the cloud tier."""
        env = os.environ if environ is None else environ

        def _get(name: str, default: str) -> str:
            return env.get(name, default)

        return cls(
            stockfish_path=env.get("STOCKFISH_PATH") or None,
            engine_depth=int(_get("ENGINE_DEPTH", "14")),
            engine_timeout_s=float(_get("ENGINE_TIMEOUT_S", "10")),
            cloud_eval_url=_get("CLOUD_EVAL_URL", DEFAULT_CLOUD_EVAL_URL) or None,
            http_timeout_s=float(_get("HTTP_TIMEOUT_S", "10")),
            lichess_url=_get("LICHESS_URL", DEFAULT_LICHESS_URL).rstrip("/"),
            chess_com_url=_get("CHESS_COM_URL", DEFAULT_CHESS_COM_URL).rstrip("/"),
            top_games_cache_path=Path(
                _get("TOP_GAMES_CACHE_PATH", "top_games_cache.json")
            ),
            top_games_ttl_hours=float(_get("TOP_GAMES_TTL_HOURS", "6")),
            top_games_min_count=int(_get("TOP_GAMES_MIN_COUNT", "5")),
            top_player_perf=_get("TOP_PLAYER_PERF", "blitz"),
        )
