import http.client
import io
import json
import tempfile
import threading
import time
import unittest
from pathlib import Path
from typing import Optional
from unittest.mock import patch

from musicplayer.cache import LibraryStore
from musicplayer.config import SpotifySettings
from musicplayer.errors import CatalogLookupError, PermissionDeniedError, PersistenceError
from musicplayer.enricher import LibraryEnricher
from musicplayer.models import CatalogMatch, MediaAsset, PermissionStatus, Track
from musicplayer.providers.spotify import SpotifyCatalog


class _MediaStub:
    def __init__(self, filenames, status=PermissionStatus.GRANTED) -> None:
        self.status = status
        self.assets = [
            MediaAsset(id=f"id-{idx}", filename=name, uri=f"file:///music/{name}")
            for idx, name in enumerate(filenames)
        ]

    def request_permissions(self) -> PermissionStatus:
        return self.status

    def get_assets(self) -> list[MediaAsset]:
        if self.status is not PermissionStatus.GRANTED:
            raise PermissionDeniedError("denied")
        return list(self.assets)


class _CatalogStub:
    """Answers by query; delays let later tracks finish first."""

    def __init__(self, answers, delays=None) -> None:
        self.answers = answers
        self.delays = delays or {}
        self.queries: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def search_track(self, query: str, token: str) -> Optional[CatalogMatch]:
        with self._lock:
            self.queries.append((query, token))
        time.sleep(self.delays.get(query, 0.0))
        answer = self.answers.get(query)
        if isinstance(answer, Exception):
            raise answer
        return answer


class _MemoryStore:
    def __init__(self) -> None:
        self.items: dict[str, str] = {}
        self.fail_writes = False

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceError("disk full")
        self.items[key] = value

    def remove_item(self, key: str) -> bool:
        return self.items.pop(key, None) is not None


class TestLibraryEnricherRefresh(unittest.IsolatedAsyncioTestCase):
    async def test_preserves_scan_order_under_varied_latency_and_failure(self) -> None:
        names = [f"{idx:02d}.mp3" for idx in range(6)]
        answers = {
            "00": CatalogMatch(artist="slow"),
            "01": CatalogLookupError("boom"),
            "02": None,
            "03": CatalogMatch(artist="fast"),
            "04": CatalogMatch(album="mid"),
            "05": CatalogLookupError("malformed"),
        }
        delays = {"00": 0.15, "01": 0.05, "03": 0.0, "04": 0.1}
        catalog = _CatalogStub(answers, delays)
        enricher = LibraryEnricher(_MediaStub(names), catalog, _MemoryStore())

        library = await enricher.refresh("tok")

        self.assertEqual([t.filename for t in library], names)
        self.assertEqual([t.artist for t in library], ["slow", None, None, "fast", None, None])
        self.assertEqual(library[4].album, "mid")
        self.assertEqual(len(catalog.queries), 6)
        self.assertTrue(all(token == "tok" for _q, token in catalog.queries))

    async def test_matched_and_unmatched_assets(self) -> None:
        catalog = _CatalogStub(
            {
                "A": CatalogMatch(album_cover="https://img/a.jpg", artist="Artist A", album="Album A"),
                "B": None,
            }
        )
        store = _MemoryStore()
        enricher = LibraryEnricher(_MediaStub(["A.mp3", "B.mp3"]), catalog, store)

        library = await enricher.refresh("tok")

        a, b = library
        self.assertEqual((a.album_cover, a.artist, a.album), ("https://img/a.jpg", "Artist A", "Album A"))
        self.assertEqual((b.album_cover, b.artist, b.album), (None, None, None))
        self.assertEqual(json.loads(store.items["audioFiles"])[0]["albumCover"], "https://img/a.jpg")

    async def test_missing_token_scans_without_lookups(self) -> None:
        catalog = _CatalogStub({})
        store = _MemoryStore()
        enricher = LibraryEnricher(_MediaStub(["a.mp3", "b.mp3"]), catalog, store)

        library = await enricher.refresh(None)

        self.assertEqual([t.filename for t in library], ["a.mp3", "b.mp3"])
        self.assertFalse(any(t.is_enriched for t in library))
        self.assertEqual(catalog.queries, [])
        self.assertIn("audioFiles", store.items)

    async def test_permission_denied_yields_empty_library(self) -> None:
        catalog = _CatalogStub({})
        store = _MemoryStore()
        media = _MediaStub(["a.mp3"], status=PermissionStatus.DENIED)
        enricher = LibraryEnricher(media, catalog, store)

        with self.assertLogs("musicplayer.enricher", level="INFO"):
            library = await enricher.refresh("tok")

        self.assertEqual(library, [])
        self.assertEqual(catalog.queries, [])
        self.assertEqual(store.items, {})

    async def test_persist_failure_still_returns_library(self) -> None:
        store = _MemoryStore()
        store.fail_writes = True
        enricher = LibraryEnricher(_MediaStub(["a.mp3"]), _CatalogStub({}), store)

        with self.assertLogs("musicplayer.enricher", level="ERROR"):
            library = await enricher.refresh("tok")

        self.assertEqual([t.filename for t in library], ["a.mp3"])

    async def test_bounded_concurrency_still_covers_every_track(self) -> None:
        names = [f"t{idx}.mp3" for idx in range(5)]
        answers = {f"t{idx}": CatalogMatch(artist=str(idx)) for idx in range(5)}
        enricher = LibraryEnricher(
            _MediaStub(names), _CatalogStub(answers), _MemoryStore(), max_concurrent_lookups=2
        )
        library = await enricher.refresh("tok")
        self.assertEqual([t.artist for t in library], ["0", "1", "2", "3", "4"])

    async def test_transport_failure_in_real_catalog_leaves_track_unenriched(self) -> None:
        item = {"artists": [{"name": "Artist B"}], "album": {"name": "Album B", "images": []}}

        def fake_urlopen(req, timeout=None):
            if "q=a&" in req.full_url:
                raise http.client.BadStatusLine("garbage")
            return io.BytesIO(json.dumps({"tracks": {"items": [item]}}).encode("utf-8"))

        catalog = SpotifyCatalog(SpotifySettings(client_id="c", client_secret="s"))
        store = _MemoryStore()
        enricher = LibraryEnricher(_MediaStub(["a.mp3", "b.mp3"]), catalog, store)

        with patch("musicplayer.providers.spotify.urllib.request.urlopen", fake_urlopen):
            with self.assertLogs("musicplayer.enricher", level="WARNING"):
                library = await enricher.refresh("tok")

        self.assertEqual([t.filename for t in library], ["a.mp3", "b.mp3"])
        self.assertFalse(library[0].is_enriched)
        self.assertEqual((library[1].artist, library[1].album), ("Artist B", "Album B"))
        self.assertIn("audioFiles", store.items)

    async def test_asset_listing_failure_yields_empty_library(self) -> None:
        media = _MediaStub(["a.mp3"])

        def broken_assets() -> list[MediaAsset]:
            raise OSError(5, "Input/output error")

        media.get_assets = broken_assets  # type: ignore[method-assign]
        catalog = _CatalogStub({})
        store = _MemoryStore()
        enricher = LibraryEnricher(media, catalog, store)

        with self.assertLogs("musicplayer.enricher", level="ERROR"):
            library = await enricher.refresh("tok")

        self.assertEqual(library, [])
        self.assertEqual(catalog.queries, [])
        self.assertEqual(store.items, {})


class TestLibraryEnricherCache(unittest.TestCase):
    def test_persist_then_load_round_trips(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = LibraryStore(Path(tmpdir) / "store.sqlite3")
            try:
                enricher = LibraryEnricher(_MediaStub([]), _CatalogStub({}), store)
                library = [
                    Track("1", "a.mp3", "file:///a.mp3", "https://img/1", "Artist", "Album"),
                    Track("2", "b.mp3", "file:///b.mp3"),
                    Track("3", "c.mp3", "file:///c.mp3", artist="Only Artist"),
                ]
                self.assertTrue(enricher.persist(library))
                self.assertEqual(enricher.load_cached(), library)
            finally:
                store.close()

    def test_merge_from_odd_catalog_item_still_round_trips(self) -> None:
        match = CatalogMatch.from_item(
            {"album": {"name": 1989, "images": [{"url": 5}]}, "artists": [{"name": "Real"}]}
        )
        track = Track("1", "a.mp3", "file:///a.mp3")
        track.apply_match(match)
        enricher = LibraryEnricher(_MediaStub([]), _CatalogStub({}), _MemoryStore())

        self.assertTrue(enricher.persist([track]))
        self.assertEqual(enricher.load_cached(), [track])

    def test_load_cached_without_snapshot_returns_none(self) -> None:
        enricher = LibraryEnricher(_MediaStub([]), _CatalogStub({}), _MemoryStore())
        self.assertIsNone(enricher.load_cached())

    def test_corrupt_snapshot_is_treated_as_absent(self) -> None:
        for raw in ("{not json", '{"id": "1"}', '[{"filename": "a.mp3"}]'):
            store = _MemoryStore()
            store.items["audioFiles"] = raw
            enricher = LibraryEnricher(_MediaStub([]), _CatalogStub({}), store)
            with self.subTest(raw=raw):
                with self.assertLogs("musicplayer.enricher", level="ERROR"):
                    self.assertIsNone(enricher.load_cached())

    def test_custom_storage_key_and_clear(self) -> None:
        store = _MemoryStore()
        enricher = LibraryEnricher(_MediaStub([]), _CatalogStub({}), store, storage_key="other")
        enricher.persist([Track("1", "a.mp3", "u")])
        self.assertEqual(list(store.items), ["other"])
        self.assertTrue(enricher.clear_cache())
        self.assertIsNone(enricher.load_cached())


if __name__ == "__main__":
    unittest.main()
