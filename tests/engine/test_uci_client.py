"""Unit tests for src/engine/uci_client.py"""

import sys
import time
from pathlib import Path

import pytest

from src.core.exceptions import EngineTierError, UciTimeoutError
from src.core.models import MATE_SCORE
from src.core.shared_types import AnalysisSource
from src.engine.uci_client import (
    SearchProgress,
    UciProcessClient,
    UciState,
    parse_bestmove_line,
    parse_info_line,
)

FAKE_ENGINE = Path(__file__).parent / "fake_uci_engine.py"
AFTER_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


def fake_engine(mode: str) -> list[str]:
    return [sys.executable, str(FAKE_ENGINE), mode]


# -- Line parsing --
def test_parse_info_line_centipawns() -> None:
    progress = SearchProgress()
    parse_info_line("info depth 12 seldepth 16 score cp -25 nodes 1000 pv e7e5 g1f3", progress)
    assert progress.depth == 12
    assert progress.score_cp == -25
    assert progress.principal_variation == ["e7e5", "g1f3"]


def test_parse_info_line_mate() -> None:
    progress = SearchProgress()
    parse_info_line("info depth 5 score mate 2 pv d8h4", progress)
    assert progress.score_cp == MATE_SCORE - 2

    parse_info_line("info depth 6 score mate -3 pv a2a3", progress)
    assert progress.score_cp == -(MATE_SCORE - 3)


def test_parse_info_line_keeps_previous_values() -> None:
    """Lines without score / pv (e.g. currmove updates) do not erase what we already know."""
    progress = SearchProgress(depth=10, score_cp=30, principal_variation=["e2e4"])
    parse_info_line("info depth 11 currmove d2d4 currmovenumber 2", progress)
    assert progress.depth == 11
    assert progress.score_cp == 30
    assert progress.principal_variation == ["e2e4"]


@pytest.mark.parametrize(
    "line, expected",
    [
        ("bestmove e2e4 ponder e7e5", "e2e4"),
        ("bestmove e7e8q", "e7e8q"),
        ("bestmove (none)", ""),
        ("bestmove", ""),
    ],
)
def test_parse_bestmove_line(line: str, expected: str) -> None:
    assert parse_bestmove_line(line) == expected


# -- Process lifecycle --
def test_search_to_depth() -> None:
    """Handshake, search, terminal 'bestmove': the last info line provides score/PV."""
    client = UciProcessClient(fake_engine("normal"), timeout_s=10)
    analysis = client.run(AFTER_E4_FEN, depth=12)

    assert client.state == UciState.DONE
    assert analysis.best_move == "e7e5"
    assert analysis.evaluation == -25
    assert analysis.depth == 12
    assert analysis.principal_variation == ["e7e5", "g1f3", "b8c6"]
    assert analysis.source == AnalysisSource.LOCAL


def test_search_reports_mate() -> None:
    client = UciProcessClient(fake_engine("mate"), timeout_s=10)
    analysis = client.run(AFTER_E4_FEN, movetime_ms=100)
    assert analysis.best_move == "d8h4"
    assert analysis.evaluation == MATE_SCORE - 2


def test_search_without_legal_moves() -> None:
    client = UciProcessClient(fake_engine("none"), timeout_s=10)
    analysis = client.run(AFTER_E4_FEN, depth=3)
    assert client.state == UciState.DONE
    assert analysis.best_move == ""


@pytest.mark.parametrize("mode", ["hang", "silent"])
def test_timeout_kills_engine(mode: str) -> None:
    """An engine that never answers is killed once the deadline passes; the call does not hang."""
    client = UciProcessClient(fake_engine(mode), timeout_s=1.0)
    started = time.monotonic()
    with pytest.raises(UciTimeoutError):
        client.run(AFTER_E4_FEN, depth=20)
    assert client.state == UciState.TIMED_OUT
    assert time.monotonic() - started < 5


def test_engine_crash() -> None:
    client = UciProcessClient(fake_engine("crash"), timeout_s=10)
    with pytest.raises(EngineTierError):
        client.run(AFTER_E4_FEN, depth=5)
    assert client.state == UciState.FAILED


def test_missing_executable() -> None:
    client = UciProcessClient(["/definitely/not/a/stockfish"], timeout_s=1)
    with pytest.raises(EngineTierError):
        client.run(AFTER_E4_FEN, depth=5)
    assert client.state == UciState.FAILED


def test_go_command() -> None:
    client = UciProcessClient(["stockfish"], timeout_s=2)
    assert client._go_command(depth=14, movetime_ms=None) == "go depth 14"
    assert client._go_command(depth=None, movetime_ms=500) == "go movetime 500"
    assert client._go_command(depth=None, movetime_ms=None) == "go movetime 1600"


class MockProcess:
    """Popen stand-in whose stdin pipe was never opened."""

    stdin = None


def test_send_without_stdin_pipe() -> None:
    client = UciProcessClient(["stockfish"], timeout_s=2)
    with pytest.raises(EngineTierError):
        client._send(MockProcess(), "uci")
