"""Runs one job under the job registry and maps how it ended.

The runner owns the job's :class:`CancellationToken` (via the registry),
binds ``job_name`` into the structlog context for the duration of the
run, and turns the job's return value or exception into a
:class:`JobRunResult`:

==========================  ===========
job ended with              outcome
==========================  ===========
report (completed/skip/...) report's own
OperationCancelledError     cancelled
any other exception         failed
already running             skipped
==========================  ===========
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from uuid import uuid4

import structlog

from cratedigger.models.catalog import utc_now
from cratedigger.models.discovery import (
    DiscoveryReport,
    JobOutcome,
    JobRunResult,
    RecommendationReport,
)
from cratedigger.providers.jobs.memory_job_registry import MemoryJobRegistry
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError
from cratedigger.utils.logging import bound_job_context, get_logger

JobCallable = Callable[[CancellationToken], Awaitable[DiscoveryReport | RecommendationReport]]

_logger: structlog.BoundLogger = get_logger(__name__)


async def run_job(
    job_name: str,
    job: JobCallable,
    registry: MemoryJobRegistry,
) -> JobRunResult:
    """Run *job* once as *job_name*.

    Parameters
    ----------
    job_name:
        Registry key, e.g. ``"catalog-discovery"``.
    job:
        Coroutine function taking the run's cancellation token, normally a
        bound ``run`` method of a job instance.
    registry:
        Shared running-job registry.  The job is registered for exactly
        the duration of the call.
    """
    started_at = utc_now()
    if registry.is_running(job_name):
        _logger.info("job_already_running", job_name=job_name)
        return JobRunResult(
            job_name=job_name,
            outcome=JobOutcome.SKIPPED,
            started_at=started_at,
            error="already running",
        )

    token = registry.start(job_name)
    outcome = JobOutcome.FAILED
    added_count = 0
    error = ""

    with bound_job_context(job_name, run_id=uuid4().hex[:8]):
        _logger.info("job_started")
        try:
            report = await job(token)
            outcome = report.outcome
            added_count = report.added_count
            error = report.message if outcome != JobOutcome.COMPLETED else ""
        except OperationCancelledError as exc:
            outcome = JobOutcome.CANCELLED
            error = exc.message
            _logger.info("job_cancelled", reason=exc.message)
        except Exception as exc:
            outcome = JobOutcome.FAILED
            error = str(exc)
            _logger.exception("job_failed", error=error)
        finally:
            registry.finish(job_name)

        _logger.info("job_finished", outcome=outcome.value, added=added_count)

    return JobRunResult(
        job_name=job_name,
        outcome=outcome,
        started_at=started_at,
        finished_at=utc_now(),
        added_count=added_count,
        error=error,
    )
