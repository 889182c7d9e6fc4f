"""Subsonic-compatible library provider (Navidrome, Airsonic, Gonic ...).

Lists library artists through the Subsonic REST ``getArtists`` endpoint
using token authentication: ``t = md5(password + salt)`` with a fresh
random salt per request, so the password itself never goes over the wire.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Any

import httpx

from cratedigger.interfaces.library_provider import ILibraryProvider
from cratedigger.models.catalog import LibraryArtist
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError, ProviderUnavailableError
from cratedigger.utils.logging import get_logger
from cratedigger.utils.retry import RetryingExecutor

_API_VERSION = "1.16.1"
_CLIENT_NAME = "cratedigger"


class SubsonicLibraryProvider(ILibraryProvider):
    """Library provider for any server speaking the Subsonic API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        host: str,
        username: str,
        password: str,
        retry: RetryingExecutor | None = None,
    ) -> None:
        self._http = http_client
        self._host = host.rstrip("/")
        self._username = username
        self._password = password
        self._retry = retry or RetryingExecutor()
        self._logger = get_logger(__name__)

    def _auth_params(self) -> dict[str, str]:
        salt = secrets.token_hex(8)
        token = hashlib.md5((self._password + salt).encode("utf-8")).hexdigest()  # noqa: S324
        return {
            "u": self._username,
            "t": token,
            "s": salt,
            "v": _API_VERSION,
            "c": _CLIENT_NAME,
            "f": "json",
        }

    def _parse_artists(self, payload: dict[str, Any]) -> list[LibraryArtist]:
        body = payload.get("subsonic-response") or {}
        if body.get("status") != "ok":
            error = body.get("error") or {}
            raise ProviderUnavailableError(
                message=f"Subsonic error {error.get('code')}: {error.get('message', 'unknown')}",
                provider_name=self.get_provider_name(),
            )

        artists: list[LibraryArtist] = []
        for index in (body.get("artists") or {}).get("index") or []:
            for artist in index.get("artist") or []:
                name = (artist.get("name") or "").strip()
                if not name or artist.get("id") is None:
                    continue
                artists.append(LibraryArtist(library_id=str(artist["id"]), name=name))
        return artists

    async def list_artists(
        self, cancel_token: CancellationToken | None = None
    ) -> list[LibraryArtist]:
        """Return every artist in the library, in server index order.

        Raises
        ------
        ProviderUnavailableError
            If the server is unreachable, rejects the credentials, or
            answers with something that is not a Subsonic response.
        """
        if not self.is_configured():
            raise ProviderUnavailableError(
                message="Subsonic server is not configured",
                provider_name=self.get_provider_name(),
            )

        try:
            response = await self._retry.request(
                self._http,
                "GET",
                f"{self._host}/rest/getArtists.view",
                cancel_token=cancel_token,
                params=self._auth_params(),
            )
            artists = self._parse_artists(response.json())
        except (OperationCancelledError, ProviderUnavailableError):
            raise
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            raise ProviderUnavailableError(
                message=f"Subsonic getArtists failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        self._logger.info("subsonic_artists_listed", artist_count=len(artists))
        return artists

    def get_provider_name(self) -> str:
        return "subsonic"

    def is_configured(self) -> bool:
        return bool(self._host and self._username)
