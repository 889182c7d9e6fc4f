"""Concurrent fan-out over every configured similarity provider.

One task per provider, each running inside its own cancellation scope that
is derived from the job token and bounded by the per-provider timeout.  All
tasks are awaited to completion before the results are merged; a slow or
failing provider only ever costs its own contribution.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from cratedigger.interfaces.similarity_provider import ISimilarityProvider
from cratedigger.models.catalog import CandidateResult
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.concurrency import gather_settled
from cratedigger.utils.errors import OperationCancelledError
from cratedigger.utils.logging import get_logger

logger = get_logger(__name__)


async def _fetch_one(
    provider: ISimilarityProvider,
    artist_name: str,
    artist_mbid: str | None,
    limit: int,
    timeout_s: float,
    cancel_token: CancellationToken | None,
) -> list[CandidateResult]:
    scope = cancel_token.child() if cancel_token is not None else CancellationToken()
    try:
        return await asyncio.wait_for(
            scope.run(
                provider.get_similar_artists(
                    artist_name, artist_mbid, limit, cancel_token=scope
                )
            ),
            timeout=timeout_s,
        )
    except asyncio.TimeoutError:
        scope.cancel("timeout")
        logger.debug(
            "provider_timed_out",
            provider=provider.get_provider_name(),
            artist=artist_name,
            timeout_s=timeout_s,
        )
        return []
    except OperationCancelledError:
        # The caller re-checks its own token and discards this fetch.
        logger.debug(
            "provider_fetch_cancelled",
            provider=provider.get_provider_name(),
            artist=artist_name,
        )
        return []
    except Exception as exc:
        logger.warning(
            "provider_fetch_failed",
            provider=provider.get_provider_name(),
            artist=artist_name,
            error=str(exc) or type(exc).__name__,
        )
        raise


async def fetch_from_all(
    providers: Sequence[ISimilarityProvider],
    artist_name: str,
    artist_mbid: str | None,
    limit: int,
    timeout_ms: int,
    cancel_token: CancellationToken | None = None,
) -> list[CandidateResult]:
    """Query every provider concurrently and concatenate the survivors' results.

    Parameters
    ----------
    providers:
        Providers to query; invocation order is the order of this sequence.
    artist_name, artist_mbid, limit:
        Passed through to :meth:`ISimilarityProvider.get_similar_artists`.
    timeout_ms:
        Per-provider deadline.  A provider that misses it is cancelled and
        contributes nothing.
    cancel_token:
        Job-level token; every per-provider scope is derived from it.

    Returns
    -------
    list[CandidateResult]
        Results in provider-invocation order (not completion order).
        Duplicates across providers are preserved.  Never raises for
        provider failures: an empty provider list, or every provider
        failing, yields ``[]``.
    """
    if not providers:
        return []

    timeout_s = max(0.0, timeout_ms / 1000.0)
    outcomes = await gather_settled(
        [
            _fetch_one(provider, artist_name, artist_mbid, limit, timeout_s, cancel_token)
            for provider in providers
        ]
    )

    merged: list[CandidateResult] = []
    for outcome in outcomes:
        if outcome.ok and outcome.value:
            merged.extend(outcome.value)
    return merged
