"""Protocols for the persistence collaborators (cache storage, user profile store)."""

from typing import Optional, Protocol

from src.core.models import LinkedAccounts, TopGamesCacheEntry


class TopGamesCache(Protocol):
    """Shared storage for the curated top games. Freshness (TTL) is decided by the caller."""

    def load(self) -> Optional[TopGamesCacheEntry]:
        """Stored entry, or None if nothing was stored yet. Raises CacheReadError if the stored data is unusable."""
        ...

    def store(self, entry: TopGamesCacheEntry) -> None:
        """Replace the stored entry as a whole. Raises CacheWriteError if the entry could not be written."""
        ...


class AccountDirectory(Protocol):
    """User profile store (external). Knows which provider accounts a user linked."""

    def get_linked_accounts(self, user_id: str) -> Optional[LinkedAccounts]:
        """Linked accounts of the user, None if the user is unknown."""
        ...
