"""
Game ingestion: recent games of a user (uncached, per request) and the shared, cached top games.

Provider fetches run concurrently and are joined with all-settle semantics: a failing provider only contributes [].
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

import httpx

from src.api.models import GamesResponse, RecentGamesRequest, TopGamesRequest, clamp_limit
from src.chess.replay import PgnReplayer
from src.chess.rules import PythonChessRules, RulesEngine
from src.core.config import Settings
from src.core.exceptions import CacheReadError, CacheWriteError, UserNotFoundError
from src.core.models import TopGamesCacheEntry, TrainingGame, utc_now
from src.db.json_cache import JsonFileTopGamesCache
from src.db.repository import AccountDirectory, TopGamesCache
from src.ingestion.providers import ChessComFetcher, LichessFetcher

_log = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]
GamesFetch = Callable[[httpx.AsyncClient], Awaitable[list[TrainingGame]]]

DEFAULT_TTL_SECONDS = 6 * 3600
DEFAULT_MIN_TOP_GAMES = 5
# Top games are cached at the maximum size any request may ask for
TOP_GAMES_FETCH_LIMIT = 50
USER_AGENT = "chess-trainer-core (game ingestion)"


def default_client_factory(timeout_s: float = 10.0) -> ClientFactory:
    def _factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout_s,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    return _factory


class GameIngestionService:
    def __init__(
        self,
        accounts: AccountDirectory,
        lichess: LichessFetcher,
        chess_com: ChessComFetcher,
        cache: TopGamesCache,
        client_factory: ClientFactory = default_client_factory(),
        clock: Callable[[], datetime] = utc_now,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        min_top_games: int = DEFAULT_MIN_TOP_GAMES,
        top_player_perf: str = "blitz",
    ) -> None:
        self.accounts = accounts
        self.lichess = lichess
        self.chess_com = chess_com
        self.cache = cache
        self.client_factory = client_factory
        self.clock = clock
        self.ttl_seconds = ttl_seconds
        self.min_top_games = min_top_games
        self.top_player_perf = top_player_perf

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        accounts: AccountDirectory,
        rules: Optional[RulesEngine] = None,
        cache: Optional[TopGamesCache] = None,
    ) -> "GameIngestionService":
        replayer = PgnReplayer(rules or PythonChessRules())
        return cls(
            accounts=accounts,
            lichess=LichessFetcher(replayer, base_url=settings.lichess_url),
            chess_com=ChessComFetcher(replayer, base_url=settings.chess_com_url),
            cache=cache or JsonFileTopGamesCache(settings.top_games_cache_path),
            client_factory=default_client_factory(settings.http_timeout_s),
            ttl_seconds=settings.top_games_ttl_seconds,
            min_top_games=settings.top_games_min_count,
            top_player_perf=settings.top_player_perf,
        )

    # -- API routes logic ---
    async def recent_games(self, request: RecentGamesRequest) -> GamesResponse:
        """User requested their latest games from the linked providers."""
        games = await self.get_recent_games_for_user(request.user_id, request.limit)
        return GamesResponse.from_games(games)

    async def top_games(self, request: TopGamesRequest) -> GamesResponse:
        return GamesResponse.from_games(await self.get_top_games(request.limit))

    # -- Ingestion ---
    async def get_recent_games_for_user(
        self, user_id: str, limit: Optional[float]
    ) -> list[TrainingGame]:
        """
        Recent games from every provider the user linked, newest first.
        ----
        No linked provider: [] (not an error). An unknown user raises UserNotFoundError.
        """
        accounts = self.accounts.get_linked_accounts(user_id)
        if accounts is None:
            raise UserNotFoundError(f"User with {user_id=} not found.")

        safe_limit = clamp_limit(limit)
        fetches: list[tuple[str, GamesFetch]] = []
        if accounts.lichess_username:
            username = accounts.lichess_username
            fetches.append(
                (
                    "lichess",
                    lambda client: self.lichess.fetch_user_games(
                        client, username, safe_limit
                    ),
                )
            )
        if accounts.chess_com_username:
            chess_com_username = accounts.chess_com_username
            fetches.append(
                (
                    "chess.com",
                    lambda client: self.chess_com.fetch_user_games(
                        client, chess_com_username, safe_limit
                    ),
                )
            )
        if not fetches:
            return []

        async with self.client_factory() as client:
            results = await asyncio.gather(
                *(self._settle(name, fetch(client)) for name, fetch in fetches)
            )

        merged = [game for games in results for game in games]
        merged.sort(key=lambda game: game.end_time, reverse=True)
        return merged[:safe_limit]

    async def get_top_games(self, limit: Optional[float]) -> list[TrainingGame]:
        """
        Curated top games shared by all users.
        ----
        1. fresh cache entry? serve it
        2. otherwise: live broadcast games
        3. fewer than `min_top_games`? games of the current top-rated player instead
        4. store the result in the cache, then serve it
        """
        safe_limit = clamp_limit(limit)
        entry = self._load_fresh_entry()
        if entry is not None:
            return list(entry.games[:safe_limit])

        games = await self._refresh_top_games()
        return games[:safe_limit]

    # -- Internal helpers --
    async def _settle(
        self, name: str, fetch: Awaitable[list[TrainingGame]]
    ) -> list[TrainingGame]:
        """Await one provider fetch, degrading any failure to []."""
        try:
            return await fetch
        except Exception as exc:  # one provider failing must not abort its siblings
            _log.warning("Fetching games from %s failed: %s", name, exc)
            return []

    def _load_fresh_entry(self) -> Optional[TopGamesCacheEntry]:
        try:
            entry = self.cache.load()
        except CacheReadError as exc:
            _log.warning("Ignoring unreadable top games cache: %s", exc)
            return None
        if entry is None or not entry.is_fresh(self.clock(), self.ttl_seconds):
            return None
        _log.debug("Serving top games cached at %s", entry.cached_at.isoformat())
        return entry

    async def _refresh_top_games(self) -> list[TrainingGame]:
        async with self.client_factory() as client:
            games = await self._settle(
                "lichess broadcast",
                self.lichess.fetch_broadcast_games(client, TOP_GAMES_FETCH_LIMIT),
            )
            if len(games) < self.min_top_games:
                _log.info(
                    "Broadcast yielded %d games (< %d), using top %s player instead",
                    len(games),
                    self.min_top_games,
                    self.top_player_perf,
                )
                top_player_games = await self._settle(
                    "lichess top player",
                    self.lichess.fetch_top_player_games(
                        client, self.top_player_perf, TOP_GAMES_FETCH_LIMIT
                    ),
                )
                games = top_player_games or games

        if not games:
            return []

        entry = TopGamesCacheEntry(cached_at=self.clock(), games=tuple(games))
        try:
            self.cache.store(entry)
        except CacheWriteError as exc:
            _log.warning("Could not store top games in the cache: %s", exc)
        return games
