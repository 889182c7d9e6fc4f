"""Utility modules for CrateDigger.

- **errors** -- Domain exception hierarchy rooted at CrateDiggerError, with
  OperationCancelledError as the distinct cancellation outcome.
- **cancellation** -- Explicitly owned cancellation tokens with derived
  child scopes.
- **retry** -- Transient-failure classification and the exponential
  backoff executor used by every HTTP client.
- **concurrency** -- Settled-gather helper for provider fan-out.
- **logging** -- structlog setup with console/JSON dual rendering.
- **text_normalizer** -- Artist-name lookup keys and MusicBrainz URL parsing.
"""

from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.concurrency import Settled, gather_settled
from cratedigger.utils.errors import (
    ConfigurationError,
    CrateDiggerError,
    OperationCancelledError,
    ProviderError,
    ProviderUnavailableError,
)
from cratedigger.utils.logging import bound_job_context, configure_logging, get_logger
from cratedigger.utils.retry import RetryingExecutor, RetryPolicy, is_transient_error
from cratedigger.utils.text_normalizer import normalize_name

__all__ = [
    "CancellationToken",
    "ConfigurationError",
    "CrateDiggerError",
    "OperationCancelledError",
    "ProviderError",
    "ProviderUnavailableError",
    "RetryPolicy",
    "RetryingExecutor",
    "Settled",
    "bound_job_context",
    "configure_logging",
    "gather_settled",
    "get_logger",
    "is_transient_error",
    "normalize_name",
]
