"""Job orchestration for the CrateDigger discovery jobs."""

from cratedigger.pipeline.catalog_discovery import CatalogDiscoveryJob
from cratedigger.pipeline.job_runner import run_job
from cratedigger.pipeline.recommendation_fetch import ListenBrainzFetchJob

__all__ = [
    "CatalogDiscoveryJob",
    "ListenBrainzFetchJob",
    "run_job",
]
