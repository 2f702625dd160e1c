from __future__ import annotations

import fnmatch
import hashlib
import logging
import os
from collections.abc import Iterator
from pathlib import Path

from .config import LibrarySettings
from .errors import PermissionDeniedError
from .models import MediaAsset, PermissionStatus

logger = logging.getLogger(__name__)


def asset_id(path: Path) -> str:
    return hashlib.sha1(str(path).encode("utf-8", errors="surrogateescape")).hexdigest()


class LibraryScanner:
    """Enumerates audio files under the configured library roots."""

    def __init__(self, settings: LibrarySettings) -> None:
        self.settings = settings
        self._exts = {ext.lower() for ext in self.settings.include_extensions}

    def request_permissions(self) -> PermissionStatus:
        if not self.settings.roots:
            return PermissionStatus.UNDETERMINED
        readable = [root for root in self.settings.roots if self._is_readable(root)]
        if not readable:
            logger.debug("No readable library root among %s", self.settings.roots)
            return PermissionStatus.DENIED
        return PermissionStatus.GRANTED

    def get_assets(self) -> list[MediaAsset]:
        status = self.request_permissions()
        if status is not PermissionStatus.GRANTED:
            raise PermissionDeniedError(f"media library access is {status.value}")
        return [
            MediaAsset(id=asset_id(path), filename=path.name, uri=path.as_uri())
            for path in self.iter_files()
        ]

    def iter_files(self) -> Iterator[Path]:
        seen: set[Path] = set()
        for root in self.settings.roots:
            if not self._is_readable(root):
                continue
            for file_path in sorted(root.rglob("*")):
                if file_path in seen or not file_path.is_file():
                    continue
                if not self._should_include(file_path):
                    continue
                seen.add(file_path)
                yield file_path

    def _should_include(self, path: Path) -> bool:
        if path.suffix.lower() not in self._exts:
            return False
        rel = str(path)
        for pattern in self.settings.exclude_patterns:
            if fnmatch.fnmatch(rel, pattern):
                return False
        return True

    @staticmethod
    def _is_readable(root: Path) -> bool:
        return root.is_dir() and os.access(root, os.R_OK | os.X_OK)
