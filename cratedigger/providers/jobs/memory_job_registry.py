"""In-memory job registry implementing IJobControl.

Tracks which jobs are running and which have a pending cancel request,
and owns the :class:`CancellationToken` of every running job.  Suitable
for a single-process deployment; one registry instance is shared by the
scheduler and the jobs it starts.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from cratedigger.interfaces.job_control import IJobControl
from cratedigger.utils.cancellation import CancellationToken

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class _JobState:
    token: CancellationToken = field(default_factory=CancellationToken)
    cancel_requested: bool = False


class MemoryJobRegistry(IJobControl):
    """Running-job bookkeeping for one process."""

    def __init__(self) -> None:
        self._jobs: dict[str, _JobState] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, job_name: str) -> CancellationToken:
        """Register *job_name* as running and return its cancellation token.

        Raises
        ------
        RuntimeError
            If *job_name* is already running.
        """
        if job_name in self._jobs:
            raise RuntimeError(f"Job '{job_name}' is already running")
        state = _JobState()
        self._jobs[job_name] = state
        logger.debug("job_registered", job_name=job_name)
        return state.token

    def finish(self, job_name: str) -> None:
        """Forget *job_name*; a no-op if it is not running."""
        if self._jobs.pop(job_name, None) is not None:
            logger.debug("job_unregistered", job_name=job_name)

    def request_cancel(self, job_name: str, reason: str = "cancel requested") -> bool:
        """Ask the running *job_name* to stop.

        Returns ``False`` if the job is not running.
        """
        state = self._jobs.get(job_name)
        if state is None:
            return False
        state.cancel_requested = True
        state.token.cancel(reason)
        logger.info("job_cancel_requested", job_name=job_name, reason=reason)
        return True

    # ------------------------------------------------------------------
    # IJobControl implementation
    # ------------------------------------------------------------------

    def is_cancelled(self, job_name: str) -> bool:
        state = self._jobs.get(job_name)
        return state is not None and state.cancel_requested

    def is_running(self, job_name: str) -> bool:
        return job_name in self._jobs

    def running_jobs(self) -> list[str]:
        return sorted(self._jobs)
