"""
Client for one ephemeral UCI engine process (e.g. Stockfish).

Each call to `run` walks a small state machine:

    SPAWNED -> READY -> SEARCHING -> DONE
    (any state) -> TIMED_OUT | FAILED

A reader thread pumps the engine's stdout into a queue, the caller consumes that queue line by line
against a single wall-clock deadline. The process is never reused: it is told to quit on DONE, killed otherwise.
"""

import logging
import queue
import subprocess
import threading
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import IO, Optional, Sequence

from src.core.exceptions import EngineTierError, UciTimeoutError
from src.core.models import EngineAnalysis, mate_to_centipawns
from src.core.shared_types import AnalysisSource

_log = logging.getLogger(__name__)

_EOF = None  # sentinel pushed by the reader thread when stdout closes
QUIT_GRACE_S = 0.5


class UciState(StrEnum):
    SPAWNED = "spawned"
    READY = "ready"
    SEARCHING = "searching"
    DONE = "done"
    TIMED_OUT = "timed out"
    FAILED = "failed"


@dataclass
class SearchProgress:
    """Running view of the search, updated by every 'info' line."""

    depth: int = 0
    score_cp: Optional[int] = None
    principal_variation: list[str] = field(default_factory=list)


def parse_info_line(line: str, progress: SearchProgress) -> None:
    """Update the running depth / score / PV from an 'info ...' line. Unknown or garbled fields are ignored."""
    tokens = line.split()

    def _int_after(key: str) -> Optional[int]:
        try:
            return int(tokens[tokens.index(key) + 1])
        except (ValueError, IndexError):
            return None

    depth = _int_after("depth")
    if depth is not None:
        progress.depth = depth

    centipawns = _int_after("cp")
    mate_in = _int_after("mate")
    if centipawns is not None:
        progress.score_cp = centipawns
    elif mate_in is not None:
        progress.score_cp = mate_to_centipawns(mate_in)

    if "pv" in tokens:
        pv = tokens[tokens.index("pv") + 1 :]
        if pv:
            progress.principal_variation = pv


def parse_bestmove_line(line: str) -> str:
    """'bestmove e2e4 ponder e7e5' -> 'e2e4'. '(none)' means no legal move."""
    parts = line.split()
    if len(parts) < 2 or parts[1] in ("(none)", "0000"):
        return ""
    return parts[1]


class UciProcessClient:
    """Runs exactly one search per engine process."""

    def __init__(self, command: Sequence[str], timeout_s: float = 10.0) -> None:
        self.command = list(command)
        self.timeout_s = timeout_s
        self.state: Optional[UciState] = None

    def run(
        self, fen: str, depth: Optional[int] = None, movetime_ms: Optional[int] = None
    ) -> EngineAnalysis:
        """
        Search a position and return the engine's recommendation.
        ----
        Searches to `depth` if given, else for `movetime_ms` (default: 80% of the timeout).
        Raises EngineTierError (UciTimeoutError on deadline) after killing the process.
        """
        deadline = time.monotonic() + self.timeout_s
        go_command = self._go_command(depth, movetime_ms)

        try:
            process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                bufsize=1,
            )
        except OSError as exc:
            self.state = UciState.FAILED
            raise EngineTierError(f"Could not spawn engine {self.command!r}: {exc}") from exc

        self.state = UciState.SPAWNED
        lines: queue.Queue[Optional[str]] = queue.Queue()
        reader = threading.Thread(
            target=_pump_lines, args=(process.stdout, lines), daemon=True
        )
        reader.start()

        try:
            self._send(process, "uci")
            self._await_token(lines, "uciok", deadline)
            self._send(process, "isready")
            self._await_token(lines, "readyok", deadline)
            self.state = UciState.READY

            self._send(process, f"position fen {fen}")
            self._send(process, go_command)
            self.state = UciState.SEARCHING

            analysis = self._collect_search(lines, deadline, requested_depth=depth)
            self.state = UciState.DONE
            return analysis
        except UciTimeoutError:
            self.state = UciState.TIMED_OUT
            raise
        except EngineTierError:
            self.state = UciState.FAILED
            raise
        except OSError as exc:
            # broken pipe: the engine died while we were writing
            self.state = UciState.FAILED
            raise EngineTierError(f"Engine pipe failed: {exc}") from exc
        finally:
            self._shutdown(process, reader)

    # -- Internal helpers --
    def _go_command(self, depth: Optional[int], movetime_ms: Optional[int]) -> str:
        if depth is not None:
            return f"go depth {depth}"
        if movetime_ms is None:
            movetime_ms = int(self.timeout_s * 800)
        return f"go movetime {movetime_ms}"

    def _send(self, process: subprocess.Popen, command: str) -> None:
        if process.stdin is None:
            raise EngineTierError("Engine process has no stdin pipe.")
        process.stdin.write(command + "\n")
        process.stdin.flush()

    def _next_line(self, lines: "queue.Queue[Optional[str]]", deadline: float) -> str:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise UciTimeoutError(f"Engine exceeded {self.timeout_s}s (state: {self.state})")
        try:
            line = lines.get(timeout=remaining)
        except queue.Empty as exc:
            raise UciTimeoutError(
                f"Engine exceeded {self.timeout_s}s (state: {self.state})"
            ) from exc
        if line is _EOF:
            raise EngineTierError(f"Engine closed its output (state: {self.state})")
        return line

    def _await_token(
        self, lines: "queue.Queue[Optional[str]]", token: str, deadline: float
    ) -> None:
        while self._next_line(lines, deadline) != token:
            continue

    def _collect_search(
        self,
        lines: "queue.Queue[Optional[str]]",
        deadline: float,
        requested_depth: Optional[int],
    ) -> EngineAnalysis:
        progress = SearchProgress()
        while True:
            line = self._next_line(lines, deadline)
            if line.startswith("info"):
                parse_info_line(line, progress)
            elif line.startswith("bestmove"):
                return EngineAnalysis(
                    best_move=parse_bestmove_line(line),
                    evaluation=progress.score_cp,
                    depth=progress.depth or requested_depth or 0,
                    principal_variation=progress.principal_variation,
                    source=AnalysisSource.LOCAL,
                )

    def _shutdown(self, process: subprocess.Popen, reader: threading.Thread) -> None:
        """Ask politely after a finished search, kill otherwise. Always reaps the process."""
        if process.poll() is None and self.state == UciState.DONE:
            try:
                self._send(process, "quit")
                process.wait(timeout=QUIT_GRACE_S)
            except (OSError, EngineTierError, subprocess.TimeoutExpired):
                _log.debug("Engine ignored 'quit', killing it.")
        if process.poll() is None:
            _log.debug("Killing engine process (state: %s)", self.state)
            process.kill()
            process.wait()

        # stdout hits EOF once the process is gone, so the reader finishes on its own
        reader.join(timeout=QUIT_GRACE_S)
        for stream in (process.stdin, process.stdout):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as exc:
                _log.debug("Error closing engine pipe: %s", exc)


def _pump_lines(stream: IO[str], lines: "queue.Queue[Optional[str]]") -> None:
    """Reader thread: forward stripped, non-empty lines until EOF."""
    try:
        for raw in stream:
            line = raw.strip()
            if line:
                lines.put(line)
    except (OSError, ValueError) as exc:
        _log.debug("Engine output stream closed: %s", exc)
    finally:
        lines.put(_EOF)
