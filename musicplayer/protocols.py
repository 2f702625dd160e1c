from __future__ import annotations

from typing import Optional, Protocol

from .models import CatalogMatch, MediaAsset, PermissionStatus


class MediaStore(Protocol):
    def request_permissions(self) -> PermissionStatus: ...

    def get_assets(self) -> list[MediaAsset]: ...


class Catalog(Protocol):
    def search_track(self, query: str, token: str) -> Optional[CatalogMatch]: ...


class TokenSource(Protocol):
    def fetch_token(self) -> Optional[str]: ...


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> bool: ...


class OnlineCheck(Protocol):
    def is_online(self) -> bool: ...
