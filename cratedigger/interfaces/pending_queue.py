"""Abstract base class for the pending-approval queue.

Discovery jobs add entries here; downstream download handling picks up
whatever a user approves.  Entries are keyed by MusicBrainz id.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cratedigger.models.queue import PendingEntry


class IPendingQueue(ABC):
    """Contract for the queue of items awaiting approval."""

    @abstractmethod
    async def is_pending(self, mbid: str) -> bool:
        """Return ``True`` if an entry with *mbid* is waiting for approval."""

    @abstractmethod
    async def is_rejected(self, mbid: str) -> bool:
        """Return ``True`` if *mbid* was rejected before and must not be re-added."""

    @abstractmethod
    async def add_pending(self, entry: PendingEntry) -> None:
        """Add *entry*; adding an already-pending mbid is a no-op."""
