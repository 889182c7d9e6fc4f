"""Abstract base class for the job-control collaborator (cancellation source).

The scheduler that starts jobs also records cancel requests and knows which
jobs are running.  Orchestrators poll it before every externally visible
unit of work.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

JOB_CATALOG_DISCOVERY = "catalog-discovery"
JOB_LISTENBRAINZ_FETCH = "listenbrainz-fetch"


class IJobControl(ABC):
    """Contract for querying job state."""

    @abstractmethod
    def is_cancelled(self, job_name: str) -> bool:
        """Return ``True`` if a cancel was requested for the running *job_name*."""

    @abstractmethod
    def is_running(self, job_name: str) -> bool:
        """Return ``True`` if *job_name* is currently running."""
