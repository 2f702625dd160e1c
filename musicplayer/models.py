from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, Mapping, Optional

RECORD_FIELDS = {
    "album_cover": "albumCover",
    "artist": "artist",
    "album": "album",
}


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


@dataclass(frozen=True, slots=True)
class MediaAsset:
    id: str
    filename: str
    uri: str


@dataclass(frozen=True, slots=True)
class CatalogMatch:
    album_cover: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "CatalogMatch":
        """Build a match from one entry of ``tracks.items`` in a search response."""
        album = item.get("album") or {}
        images = album.get("images") or []
        artists = item.get("artists") or []
        return cls(
            album_cover=_text(images[0].get("url")) if images else None,
            artist=_text(artists[0].get("name")) if artists else None,
            album=_text(album.get("name")),
        )


@dataclass(slots=True)
class Track:
    id: str
    filename: str
    uri: str
    album_cover: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None

    @classmethod
    def from_asset(cls, asset: MediaAsset) -> "Track":
        return cls(id=asset.id, filename=asset.filename, uri=asset.uri)

    @property
    def search_query(self) -> str:
        """Filename without its final extension.

        Inner dots survive (``Mr. P.C..flac`` -> ``Mr. P.C.``), unlike cutting at
        the first dot, which would search for ``Mr``.
        """
        name = PurePosixPath(self.filename)
        return name.stem if name.suffix else self.filename

    @property
    def is_enriched(self) -> bool:
        return any(getattr(self, attr) is not None for attr in RECORD_FIELDS)

    def apply_match(self, match: CatalogMatch) -> None:
        self.album_cover = match.album_cover
        self.artist = match.artist
        self.album = match.album

    def to_record(self) -> Dict[str, str]:
        payload = {"id": self.id, "filename": self.filename, "uri": self.uri}
        for attr, key in RECORD_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                payload[key] = value
        return payload

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Track":
        if not isinstance(record, Mapping):
            raise ValueError(f"track record must be an object, got {type(record).__name__}")
        values: Dict[str, Optional[str]] = {}
        for key in ("id", "filename", "uri"):
            value = record.get(key)
            if not isinstance(value, str):
                raise ValueError(f"track record field {key!r} missing or not a string")
            values[key] = value
        for attr, key in RECORD_FIELDS.items():
            value = record.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"track record field {key!r} must be a string")
            values[attr] = value
        return cls(**values)
