from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional, Sequence

from .config import LIBRARY_KEY
from .errors import CatalogLookupError, PermissionDeniedError, PersistenceError
from .models import PermissionStatus, Track
from .protocols import Catalog, KeyValueStore, MediaStore

logger = logging.getLogger(__name__)


class LibraryEnricher:
    """Scans the media store, merges catalog metadata into each track and keeps an offline copy.

    Lookups are issued together and joined in scan order; a failed lookup leaves
    its track unenriched and never aborts the batch.
    """

    def __init__(
        self,
        media: MediaStore,
        catalog: Catalog,
        store: KeyValueStore,
        *,
        storage_key: str = LIBRARY_KEY,
        max_concurrent_lookups: Optional[int] = None,
    ) -> None:
        self.media = media
        self.catalog = catalog
        self.store = store
        self.storage_key = storage_key
        self.max_concurrent_lookups = max_concurrent_lookups

    async def refresh(self, token: Optional[str]) -> list[Track]:
        tracks = await self.scan()
        if tracks is None:
            return []
        if token:
            tracks = await self.enrich(tracks, token)
        else:
            logger.info("No access token; keeping %d track(s) unenriched", len(tracks))
        await asyncio.get_running_loop().run_in_executor(None, self.persist, tracks)
        return tracks

    async def scan(self) -> Optional[list[Track]]:
        """Return the device tracks, or None when media access is refused."""
        loop = asyncio.get_running_loop()
        status = await loop.run_in_executor(None, self.media.request_permissions)
        if status is not PermissionStatus.GRANTED:
            logger.info("Permission to access media library was denied (%s).", status.value)
            return None
        try:
            assets = await loop.run_in_executor(None, self.media.get_assets)
        except PermissionDeniedError as exc:
            logger.info("Media library became unavailable during scan: %s", exc)
            return None
        except OSError as exc:
            logger.error("Error fetching audio files: %s", exc)
            return None
        logger.debug("Scanned %d audio asset(s)", len(assets))
        return [Track.from_asset(asset) for asset in assets]

    async def enrich(self, tracks: Sequence[Track], token: str) -> list[Track]:
        semaphore = (
            asyncio.Semaphore(self.max_concurrent_lookups)
            if self.max_concurrent_lookups
            else None
        )

        async def bounded(track: Track) -> Track:
            if semaphore is None:
                return await self._lookup(track, token)
            async with semaphore:
                return await self._lookup(track, token)

        enriched = await asyncio.gather(*(bounded(track) for track in tracks))
        matched = sum(1 for track in enriched if track.is_enriched)
        logger.info("Enriched %d of %d track(s) from the catalog", matched, len(enriched))
        return list(enriched)

    async def _lookup(self, track: Track, token: str) -> Track:
        loop = asyncio.get_running_loop()
        try:
            match = await loop.run_in_executor(
                None, self.catalog.search_track, track.search_query, token
            )
        except CatalogLookupError as exc:
            logger.warning("Error fetching catalog data for %s: %s", track.filename, exc)
            return track
        if match is None:
            logger.debug("No catalog match for %s", track.filename)
            return track
        track.apply_match(match)
        return track

    def persist(self, library: Sequence[Track]) -> bool:
        payload = json.dumps([track.to_record() for track in library], ensure_ascii=False)
        try:
            self.store.set_item(self.storage_key, payload)
        except PersistenceError as exc:
            logger.error("Error saving library snapshot: %s", exc)
            return False
        logger.debug("Saved %d track(s) under %r", len(library), self.storage_key)
        return True

    def load_cached(self) -> Optional[list[Track]]:
        try:
            raw = self.store.get_item(self.storage_key)
        except PersistenceError as exc:
            logger.error("Error loading library snapshot: %s", exc)
            return None
        if raw is None:
            return None
        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise ValueError(f"expected a list, got {type(records).__name__}")
            return [Track.from_record(record) for record in records]
        except ValueError as exc:
            logger.error("Discarding unreadable library snapshot: %s", exc)
            return None

    def clear_cache(self) -> bool:
        try:
            return self.store.remove_item(self.storage_key)
        except PersistenceError as exc:
            logger.error("Error clearing library snapshot: %s", exc)
            return False
