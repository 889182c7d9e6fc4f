"""Job-control implementations."""

from cratedigger.providers.jobs.memory_job_registry import MemoryJobRegistry

__all__ = ["MemoryJobRegistry"]
