"""Recording-recommendation provider implementations."""

from cratedigger.providers.recommendation.listenbrainz_recommendation_provider import (
    ListenBrainzRecommendationProvider,
)

__all__ = ["ListenBrainzRecommendationProvider"]
