from __future__ import annotations

import logging

from ..config import SpotifySettings
from ..errors import CatalogLookupError, CredentialError
from .spotify import CredentialBroker, SpotifyCatalog

logger = logging.getLogger(__name__)


def validate_spotify(settings: SpotifySettings) -> None:
    """Exchange credentials and run one search; raise RuntimeError on failure."""
    if not settings.has_credentials:
        raise RuntimeError("spotify.client_id and spotify.client_secret must be set")
    broker = CredentialBroker(settings)
    try:
        token = broker.exchange()
    except CredentialError as exc:
        raise RuntimeError(f"Spotify credentials rejected: {exc}") from exc
    try:
        SpotifyCatalog(settings).search_track("Miles Davis", token)
    except CatalogLookupError as exc:
        raise RuntimeError(f"Spotify search failed: {exc}") from exc
    logger.debug("Spotify provider validated")
