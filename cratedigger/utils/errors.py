"""Custom exception hierarchy for CrateDigger.

All application exceptions inherit from :class:`CrateDiggerError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "lastfm", "musicbrainz", "subsonic") caused the
failure.

    CrateDiggerError  (base -- catch-all for any cratedigger error)
    +-- ProviderError            (malformed response, "not found", etc.)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- ConfigurationError       (startup / missing config)
    +-- OperationCancelledError  (job or scope cancelled)

Cancellation is deliberately its own kind: a run that was cancelled must
never be confused with a run that completed with zero results, nor with a
run that failed.
"""


class CrateDiggerError(Exception):
    """Base exception for all CrateDigger errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets, e.g.
    ``[lastfm] Artist not found``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class ProviderError(CrateDiggerError):
    """Raised when a provider answers but the answer is unusable.

    Covers malformed payloads and API-level error objects (e.g. Last.fm's
    ``{"error": 6, "message": "Artist not found"}``).  Similarity providers
    absorb this into an empty result at their boundary.
    """

    def __init__(
        self,
        message: str = "Provider returned an unusable response",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(CrateDiggerError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(CrateDiggerError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class OperationCancelledError(CrateDiggerError):
    """Raised when a job, or a scope derived from it, has been cancelled.

    Propagates all the way to the job runner, which reports the run as
    ``cancelled`` rather than ``failed``.
    """

    def __init__(
        self,
        message: str = "Operation cancelled",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
