from __future__ import annotations

import base64
import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Optional

from ..config import SpotifySettings
from ..errors import CatalogLookupError, CredentialError
from ..models import CatalogMatch

logger = logging.getLogger(__name__)


def _open_json(req: urllib.request.Request, timeout: Optional[float]) -> Any:
    # urlopen raises HTTPError for non-2xx responses it does not redirect
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return json.load(resp)


class CredentialBroker:
    """Client-credentials exchange against the Spotify accounts service."""

    def __init__(self, settings: SpotifySettings) -> None:
        self.settings = settings

    def basic_credentials(self) -> str:
        raw = f"{self.settings.client_id}:{self.settings.client_secret}"
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    def fetch_token(self) -> Optional[str]:
        if not self.settings.has_credentials:
            logger.warning("Spotify client id/secret not configured; enrichment disabled")
            return None
        try:
            return self.exchange()
        except CredentialError as exc:
            logger.error("Error fetching Spotify token: %s", exc)
            return None

    def exchange(self) -> str:
        body = urllib.parse.urlencode({"grant_type": "client_credentials"}).encode("ascii")
        req = urllib.request.Request(
            self.settings.token_url,
            data=body,
            method="POST",
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Authorization": f"Basic {self.basic_credentials()}",
            },
        )
        try:
            payload = _open_json(req, self.settings.request_timeout_seconds)
        except urllib.error.HTTPError as exc:
            raise CredentialError(f"token endpoint returned HTTP {exc.code}") from exc
        except urllib.error.URLError as exc:
            raise CredentialError(f"token endpoint unreachable: {exc.reason}") from exc
        except (OSError, ValueError, http.client.HTTPException) as exc:
            raise CredentialError(f"unreadable token response: {exc}") from exc
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token or not isinstance(token, str):
            raise CredentialError("token response has no access_token")
        logger.debug("Obtained Spotify access token")
        return token


class SpotifyCatalog:
    """Track search against the Spotify Web API."""

    def __init__(self, settings: SpotifySettings) -> None:
        self.settings = settings

    def search_url(self, query: str) -> str:
        return (
            f"{self.settings.search_url}?q={urllib.parse.quote(query, safe='')}"
            f"&type=track&limit={self.settings.search_limit}"
        )

    def search_track(self, query: str, token: str) -> Optional[CatalogMatch]:
        url = self.search_url(query)
        req = urllib.request.Request(url, headers={"Authorization": f"Bearer {token}"})
        try:
            payload = _open_json(req, self.settings.request_timeout_seconds)
        except urllib.error.HTTPError as exc:
            raise CatalogLookupError(f"search for {query!r} returned HTTP {exc.code}") from exc
        except urllib.error.URLError as exc:
            raise CatalogLookupError(f"search for {query!r} failed: {exc.reason}") from exc
        except (OSError, ValueError, http.client.HTTPException) as exc:
            raise CatalogLookupError(f"unreadable search response for {query!r}: {exc}") from exc
        try:
            items = payload["tracks"]["items"]
            if not items:
                return None
            return CatalogMatch.from_item(items[0])
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise CatalogLookupError(f"malformed search response for {query!r}: {exc!r}") from exc
