"""
Custom exceptions raised across layers.

Every exception derives from TrainerError, so the (excluded) web layer can map the whole family onto HTTP responses.
NOTE: none of these derive from ValueError. Pydantic wraps ValueErrors raised inside validators, these should propagate unwrapped.
"""


class TrainerError(Exception):
    """Top-level exception for the chess trainer core."""


# --- Request / session errors (surfaced to the caller) ---
class InvalidRequestError(TrainerError):
    """Request data could not be interpreted (malformed FEN, move token, etc.)."""


class SessionNotFoundError(TrainerError):
    """No practice session registered under the requested id."""


class UserNotFoundError(TrainerError):
    """The user profile store has no record of the requested user."""


class IllegalMoveError(TrainerError):
    """The rules engine rejected a move. Session state is left untouched."""


# --- Engine errors (recovered internally by the orchestrator) ---
class EngineTierError(TrainerError):
    """A single analysis tier could not produce a result."""


class UciTimeoutError(EngineTierError):
    """The engine process did not answer before the hard deadline."""


# --- Ingestion errors (isolated per provider / per game) ---
class ProviderFetchError(TrainerError):
    """A third-party game provider returned an unusable response."""


class TranscriptParseError(TrainerError):
    """A game transcript (PGN) could not be parsed into moves."""


class CacheReadError(TrainerError):
    """The top games cache exists but could not be read or validated."""


class CacheWriteError(TrainerError):
    """The top games cache could not be written. The fetched games are still usable."""
