"""
Schemas for the third-party game provider payloads.

Only the fields we use are declared; everything else is ignored. Entries that fail validation are skipped by the fetchers.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Lichess ---
class LichessUser(BaseModel):
    name: Optional[str] = None
    id: Optional[str] = None


class LichessPlayer(BaseModel):
    user: Optional[LichessUser] = None
    name: Optional[str] = None  # anonymous / AI players carry no 'user'

    @property
    def display_name(self) -> Optional[str]:
        if self.user and self.user.name:
            return self.user.name
        return self.name


class LichessPlayers(BaseModel):
    white: LichessPlayer = Field(default_factory=LichessPlayer)
    black: LichessPlayer = Field(default_factory=LichessPlayer)


class LichessGame(BaseModel):
    """One line of the NDJSON game export (requested with pgnInJson=true)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    pgn: str = Field(min_length=1)
    players: LichessPlayers = Field(default_factory=LichessPlayers)
    status: Optional[str] = None
    winner: Optional[str] = None
    last_move_at: Optional[int] = Field(default=None, alias="lastMoveAt")
    created_at: Optional[int] = Field(default=None, alias="createdAt")


class LichessLeaderboardUser(BaseModel):
    username: str = Field(min_length=1)


class LichessLeaderboard(BaseModel):
    users: list[LichessLeaderboardUser] = Field(default_factory=list)


class LichessBroadcastRound(BaseModel):
    id: str = Field(min_length=1)


class LichessBroadcastEntry(BaseModel):
    round: LichessBroadcastRound


class LichessBroadcastTop(BaseModel):
    active: list[LichessBroadcastEntry] = Field(default_factory=list)


# --- Chess.com ---
class ChessComArchives(BaseModel):
    archives: list[str] = Field(default_factory=list)


class ChessComSide(BaseModel):
    username: Optional[str] = None
    result: Optional[str] = None


class ChessComGame(BaseModel):
    pgn: str = Field(min_length=1)
    url: Optional[str] = None
    uuid: Optional[str] = None
    white: ChessComSide = Field(default_factory=ChessComSide)
    black: ChessComSide = Field(default_factory=ChessComSide)
    end_time: Optional[int] = None


class ChessComArchive(BaseModel):
    # validated one by one, so a single malformed game does not drop the month
    games: list[dict] = Field(default_factory=list)
