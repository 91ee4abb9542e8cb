"""
Expansion of game transcripts into the list of positions (one FEN per ply) used by the training UI.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from src.chess.rules import STARTING_FEN, RulesEngine, split_uci
from src.core.exceptions import InvalidRequestError, TranscriptParseError

_log = logging.getLogger(__name__)

# Games in a multi-game PGN export are separated by a blank line before the next tag section
_GAME_BOUNDARY = re.compile(r"\n\s*\n(?=\[)")


@dataclass(frozen=True)
class ReplayedGame:
    headers: dict[str, str]
    fens: list[str]


class PgnReplayer:
    def __init__(self, rules: RulesEngine) -> None:
        self.rules = rules

    def expand(self, transcript: str) -> list[str]:
        """
        Replay a PGN transcript into positions: fens[0] is the starting position, then one FEN per ply.
        ----
        An unparsable transcript or an illegal move yields [], never a truncated list.
        """
        replayed = self.replay(transcript)
        return replayed.fens if replayed else []

    def replay(self, transcript: str) -> Optional[ReplayedGame]:
        """Same as `expand`, but keeps the transcript's tag pairs. None when the game is unusable."""
        try:
            parsed = self.rules.parse_transcript(transcript)
            fen = (
                self.rules.normalize_fen(parsed.starting_fen_override)
                if parsed.starting_fen_override
                else STARTING_FEN
            )
        except (TranscriptParseError, InvalidRequestError) as exc:
            _log.debug("Skipping transcript: %s", exc)
            return None

        fens = [fen]
        for move_uci in parsed.moves:
            from_square, to_square, promotion = split_uci(move_uci)
            outcome = self.rules.apply_move(fen, from_square, to_square, promotion)
            if not outcome.legal:
                _log.debug(
                    "Skipping transcript: illegal move %s at ply %d", move_uci, len(fens)
                )
                return None
            fen = outcome.resulting_fen
            fens.append(fen)
        return ReplayedGame(headers=parsed.headers, fens=fens)

    def expand_uci(
        self, moves: Iterable[str], initial_fen: Optional[str] = None
    ) -> list[str]:
        """Replay a line of UCI tokens (e.g. an engine PV). Stops at the first illegal token, keeping what was reached."""
        fen = self.rules.normalize_fen(initial_fen) if initial_fen else STARTING_FEN
        fens = [fen]
        for token in moves:
            try:
                from_square, to_square, promotion = split_uci(token.strip())
            except InvalidRequestError:
                break
            outcome = self.rules.apply_move(fen, from_square, to_square, promotion)
            if not outcome.legal:
                break
            fen = outcome.resulting_fen
            fens.append(fen)
        return fens

    @staticmethod
    def split_transcripts(text: str) -> list[str]:
        """Split a multi-game PGN export into single-game transcripts."""
        normalized = text.replace("\r\n", "\n").strip()
        if not normalized:
            return []
        return [
            chunk.strip()
            for chunk in _GAME_BOUNDARY.split(normalized)
            if chunk.strip()
        ]
