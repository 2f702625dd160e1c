from __future__ import annotations

from dataclasses import dataclass

from .cache import LibraryStore
from .config import Settings
from .connectivity import ConnectivityProbe
from .enricher import LibraryEnricher
from .provider import AudioProvider
from .providers.spotify import CredentialBroker, SpotifyCatalog
from .scanner import LibraryScanner


@dataclass
class MusicPlayerApp:
    settings: Settings
    store: LibraryStore
    scanner: LibraryScanner
    broker: CredentialBroker
    catalog: SpotifyCatalog
    enricher: LibraryEnricher
    connectivity: ConnectivityProbe

    @classmethod
    def create(cls, settings: Settings) -> "MusicPlayerApp":
        store = LibraryStore(settings.storage.cache_path)
        scanner = LibraryScanner(settings.library)
        catalog = SpotifyCatalog(settings.spotify)
        enricher = LibraryEnricher(
            scanner,
            catalog,
            store,
            storage_key=settings.storage.library_key,
            max_concurrent_lookups=settings.spotify.max_concurrent_lookups,
        )
        return cls(
            settings=settings,
            store=store,
            scanner=scanner,
            broker=CredentialBroker(settings.spotify),
            catalog=catalog,
            enricher=enricher,
            connectivity=ConnectivityProbe(settings.network),
        )

    def get_provider(self) -> AudioProvider:
        return AudioProvider(self.broker, self.enricher, self.connectivity)

    def close(self) -> None:
        self.store.close()
