"""
Fetchers for third-party game providers (Lichess, Chess.com).

Each fetcher turns a provider's export format into TrainingGames. Transport / status problems raise ProviderFetchError,
a malformed entry only skips that entry.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from src.chess.replay import PgnReplayer
from src.core.exceptions import ProviderFetchError
from src.core.models import TrainingGame, utc_now
from src.core.shared_types import GameResult, GameSource
from src.ingestion.schemas import (
    ChessComArchive,
    ChessComArchives,
    ChessComGame,
    LichessBroadcastTop,
    LichessGame,
    LichessLeaderboard,
)

_log = logging.getLogger(__name__)

Clock = Callable[[], datetime]

PGN_RESULTS: dict[str, GameResult] = {
    "1-0": GameResult.WHITE_WINS,
    "0-1": GameResult.BLACK_WINS,
    "1/2-1/2": GameResult.DRAW,
    "½-½": GameResult.DRAW,
}
CHESS_COM_LOSSES = {"resigned", "timeout", "checkmated", "abandoned", "lose"}
CHESS_COM_DRAWS = {
    "agreed",
    "stalemate",
    "repetition",
    "insufficient",
    "50move",
    "timevsinsufficient",
}


# --- Result / time normalisation ---
def lichess_result(status: Optional[str], winner: Optional[str]) -> GameResult:
    if status == "draw":
        return GameResult.DRAW
    if winner == "white":
        return GameResult.WHITE_WINS
    if winner == "black":
        return GameResult.BLACK_WINS
    return GameResult.ONGOING


def chess_com_result(white: Optional[str], black: Optional[str]) -> GameResult:
    if white == "win" or black in CHESS_COM_LOSSES:
        return GameResult.WHITE_WINS
    if black == "win" or white in CHESS_COM_LOSSES:
        return GameResult.BLACK_WINS
    if white in CHESS_COM_DRAWS or black in CHESS_COM_DRAWS:
        return GameResult.DRAW
    return GameResult.ONGOING


def pgn_result(tag: Optional[str]) -> GameResult:
    return PGN_RESULTS.get((tag or "").strip(), GameResult.ONGOING)


def from_epoch(value: Optional[float], scale: float = 1.0) -> Optional[datetime]:
    """Epoch timestamp to UTC datetime. None when missing or outside the platform's range."""
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(value / scale, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        _log.debug("Ignoring out of range timestamp %r", value)
        return None


def pgn_end_time(headers: dict[str, str]) -> Optional[datetime]:
    """UTCDate/UTCTime when present, else Date. PGN uses '?' for unknown parts."""
    date = headers.get("UTCDate") or headers.get("Date")
    if not date or "?" in date:
        return None
    time = headers.get("UTCTime") or "00:00:00"
    try:
        return datetime.strptime(f"{date} {time}", "%Y.%m.%d %H:%M:%S").replace(
            tzinfo=timezone.utc
        )
    except ValueError:
        return None


def known_header(headers: dict[str, str], key: str) -> Optional[str]:
    """Header value, or None for the PGN placeholders (missing, empty, '?')."""
    value = (headers.get(key) or "").strip()
    if not value or set(value) <= {"?", "."}:
        return None
    return value


def _check_response(response: httpx.Response, source: GameSource) -> None:
    if response.status_code != 200:
        raise ProviderFetchError(
            f"{source} answered {response.status_code} for {response.request.url}"
        )


class LichessFetcher:
    source = GameSource.LICHESS

    def __init__(
        self,
        replayer: PgnReplayer,
        base_url: str = "https://lichess.org",
        clock: Clock = utc_now,
    ) -> None:
        self.replayer = replayer
        self.base_url = base_url.rstrip("/")
        self.clock = clock

    async def fetch_user_games(
        self, client: httpx.AsyncClient, username: str, limit: int
    ) -> list[TrainingGame]:
        """Recent games of one user, from the NDJSON export."""
        response = await client.get(
            f"{self.base_url}/api/games/user/{quote(username)}",
            params={
                "max": limit,
                "moves": "true",
                "pgnInJson": "true",
                "clocks": "false",
                "evals": "false",
                "opening": "true",
            },
            headers={"Accept": "application/x-ndjson"},
        )
        _check_response(response, self.source)

        games = []
        for line in response.text.splitlines():
            if not line.strip():
                continue
            try:
                raw = LichessGame.model_validate_json(line)
            except ValidationError as exc:
                _log.debug("Skipping malformed Lichess game: %s", exc)
                continue
            game = self._to_training_game(raw, username)
            if game is not None:
                games.append(game)
        return games

    async def fetch_top_player_games(
        self, client: httpx.AsyncClient, perf: str, limit: int
    ) -> list[TrainingGame]:
        """Recent games of the current #1 on the leaderboard for a perf type (blitz, rapid, ...)."""
        response = await client.get(
            f"{self.base_url}/api/player/top/1/{quote(perf)}",
            headers={"Accept": "application/vnd.lichess.v3+json"},
        )
        _check_response(response, self.source)
        try:
            leaderboard = LichessLeaderboard.model_validate_json(response.content)
        except ValidationError as exc:
            raise ProviderFetchError(f"Malformed Lichess leaderboard: {exc}") from exc
        if not leaderboard.users:
            raise ProviderFetchError(f"Lichess leaderboard for {perf!r} is empty.")

        top_player = leaderboard.users[0].username
        _log.info("Fetching games of top %s player %s", perf, top_player)
        return await self.fetch_user_games(client, top_player, limit)

    async def fetch_broadcast_games(
        self, client: httpx.AsyncClient, limit: int
    ) -> list[TrainingGame]:
        """Games of the most prominent live broadcast: one bulk PGN for the round in progress."""
        response = await client.get(f"{self.base_url}/api/broadcast/top")
        _check_response(response, self.source)
        try:
            top = LichessBroadcastTop.model_validate_json(response.content)
        except ValidationError as exc:
            raise ProviderFetchError(f"Malformed Lichess broadcast list: {exc}") from exc
        if not top.active:
            return []

        round_id = top.active[0].round.id
        response = await client.get(
            f"{self.base_url}/api/broadcast/round/{quote(round_id)}.pgn"
        )
        _check_response(response, self.source)

        games = []
        for index, transcript in enumerate(
            self.replayer.split_transcripts(response.text)
        ):
            game = self._broadcast_game(transcript, round_id, index)
            if game is not None:
                games.append(game)
            if len(games) >= limit:
                break
        return games

    # -- Internal helpers --
    def _to_training_game(
        self, raw: LichessGame, username: str
    ) -> Optional[TrainingGame]:
        fens = self.replayer.expand(raw.pgn)
        if not fens:
            return None
        end_time = from_epoch(raw.last_move_at or raw.created_at, scale=1000)
        return TrainingGame(
            id=f"lichess-{raw.id}",
            source=self.source,
            url=f"{self.base_url}/{raw.id}",
            white=raw.players.white.display_name or username,
            black=raw.players.black.display_name or "Opponent",
            result=lichess_result(raw.status, raw.winner),
            end_time=end_time or self.clock(),
            fens=tuple(fens),
        )

    def _broadcast_game(
        self, transcript: str, round_id: str, index: int
    ) -> Optional[TrainingGame]:
        replayed = self.replayer.replay(transcript)
        if replayed is None:
            return None
        headers = replayed.headers
        game_url = known_header(headers, "GameURL")
        url = (
            game_url
            or known_header(headers, "Site")
            or f"{self.base_url}/broadcast/-/-/{round_id}"
        )
        game_id = (
            game_url.rstrip("/").rsplit("/", 1)[-1]
            if game_url
            else f"{round_id}-{index}"
        )
        return TrainingGame(
            id=f"lichess-{game_id}",
            source=self.source,
            url=url,
            white=known_header(headers, "White") or "White",
            black=known_header(headers, "Black") or "Black",
            result=pgn_result(headers.get("Result")),
            end_time=pgn_end_time(headers) or self.clock(),
            fens=tuple(replayed.fens),
        )


class ChessComFetcher:
    source = GameSource.CHESS_COM

    def __init__(
        self,
        replayer: PgnReplayer,
        base_url: str = "https://api.chess.com",
        clock: Clock = utc_now,
    ) -> None:
        self.replayer = replayer
        self.base_url = base_url.rstrip("/")
        self.clock = clock

    async def fetch_user_games(
        self, client: httpx.AsyncClient, username: str, limit: int
    ) -> list[TrainingGame]:
        """
        Recent games of one user.
        ----
        Chess.com only exposes monthly archives: read the archive index, then the latest month.
        """
        response = await client.get(
            f"{self.base_url}/pub/player/{quote(username.lower())}/games/archives"
        )
        _check_response(response, self.source)
        try:
            index = ChessComArchives.model_validate_json(response.content)
        except ValidationError as exc:
            raise ProviderFetchError(f"Malformed Chess.com archive index: {exc}") from exc
        if not index.archives:
            return []

        response = await client.get(index.archives[-1])
        _check_response(response, self.source)
        try:
            archive = ChessComArchive.model_validate_json(response.content)
        except ValidationError as exc:
            raise ProviderFetchError(f"Malformed Chess.com archive: {exc}") from exc

        games = []
        for entry in archive.games:
            try:
                raw = ChessComGame.model_validate(entry)
            except ValidationError as exc:
                _log.debug("Skipping malformed Chess.com game: %s", exc)
                continue
            game = self._to_training_game(raw, username)
            if game is not None:
                games.append(game)

        games.sort(key=lambda game: game.end_time, reverse=True)
        return games[:limit]

    def _to_training_game(
        self, raw: ChessComGame, username: str
    ) -> Optional[TrainingGame]:
        fens = self.replayer.expand(raw.pgn)
        if not fens:
            return None
        url = raw.url or f"https://www.chess.com/member/{quote(username)}"
        return TrainingGame(
            id=f"chesscom-{raw.uuid or url}",
            source=self.source,
            url=url,
            white=raw.white.username or "White",
            black=raw.black.username or "Black",
            result=chess_com_result(raw.white.result, raw.black.result),
            end_time=from_epoch(raw.end_time) or self.clock(),
            fens=tuple(fens),
        )
