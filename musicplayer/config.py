from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

LIBRARY_KEY = "audioFiles"


def _env(*names: str) -> str:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return ""


class LibrarySettings(BaseModel):
    roots: List[Path]
    include_extensions: List[str] = Field(
        default_factory=lambda: [".mp3", ".flac", ".m4a", ".ogg", ".wav", ".aac", ".opus"]
    )
    exclude_patterns: List[str] = Field(default_factory=list)

    @field_validator("roots", mode="before")
    @classmethod
    def _expand_roots(cls, values: List[str]) -> List[Path]:
        return [Path(v).expanduser().resolve() for v in values]


class SpotifySettings(BaseModel):
    client_id: str = Field(
        default_factory=lambda: _env("SPOTIFY_CLIENT_ID", "EXPO_PUBLIC_SPOTIFY_CLIENT_ID")
    )
    client_secret: str = Field(
        default_factory=lambda: _env("SPOTIFY_CLIENT_SECRET", "EXPO_PUBLIC_SPOTIFY_CLIENT_SECRET")
    )
    token_url: str = "https://accounts.spotify.com/api/token"
    search_url: str = "https://api.spotify.com/v1/search"
    search_limit: int = Field(default=1, ge=1, le=50)
    # None means block until the server answers.
    request_timeout_seconds: Optional[float] = None
    max_concurrent_lookups: Optional[int] = Field(default=None, ge=1)

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


class StorageSettings(BaseModel):
    cache_path: Path = Path("./cache/library.sqlite3")
    library_key: str = LIBRARY_KEY

    @field_validator("cache_path", mode="before")
    @classmethod
    def _expand_cache(cls, value: str | Path) -> Path:
        return Path(value).expanduser().resolve()


class NetworkSettings(BaseModel):
    assume_online: Optional[bool] = None
    probe_host: str = "api.spotify.com"
    probe_port: int = 443
    probe_timeout_seconds: float = 3.0


class Settings(BaseModel):
    library: LibrarySettings
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        return cls.model_validate(raw)


def find_config(explicit_path: Optional[Path]) -> Path:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    raise FileNotFoundError("Could not find config.yaml - pass --config explicitly.")
