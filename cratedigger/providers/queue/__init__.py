"""Pending-queue implementations."""

from cratedigger.providers.queue.sqlite_pending_queue import SQLitePendingQueue

__all__ = ["SQLitePendingQueue"]
