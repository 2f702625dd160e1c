from __future__ import annotations

from dataclasses import dataclass

from ..app import MusicPlayerApp
from ..config import Settings
from ..errors import PersistenceError
from ..models import PermissionStatus
from ..providers.validation import validate_spotify
from .output import error, ok as ok_line, skipped, warning


@dataclass(slots=True)
class DoctorReport:
    ok: bool
    checks: list[str]


def run(
    settings: Settings,
    *,
    validate_providers_online: bool = False,
) -> DoctorReport:
    checks: list[str] = []
    ok = True

    try:
        app = MusicPlayerApp.create(settings)
    except PersistenceError as exc:
        return DoctorReport(ok=False, checks=[error("Store", str(exc))])
    try:
        checks.append(ok_line("Store", str(settings.storage.cache_path)))

        roots = settings.library.roots
        missing = [str(root) for root in roots if not root.exists()]
        if missing:
            checks.append(warning("Library roots", f"missing: {', '.join(missing)}"))
        if app.scanner.request_permissions() is PermissionStatus.GRANTED:
            checks.append(ok_line("Media access", f"{len(roots)} root(s)"))
        else:
            ok = False
            checks.append(error("Media access", "no readable library root"))

        if settings.spotify.has_credentials:
            checks.append(ok_line("Spotify credentials", "configured"))
        else:
            checks.append(
                warning(
                    "Spotify credentials",
                    "unset; tracks will not be enriched (set SPOTIFY_CLIENT_ID/SPOTIFY_CLIENT_SECRET)",
                )
            )

        cached = app.enricher.load_cached()
        key = settings.storage.library_key
        if cached is None:
            if app.store.get_item(key) is None:
                checks.append(ok_line("Cached library", "none yet (run `musicplayer sync`)"))
            else:
                checks.append(warning("Cached library", "snapshot unreadable; it will be replaced"))
        else:
            enriched = sum(1 for track in cached if track.is_enriched)
            checks.append(
                ok_line(
                    "Cached library",
                    f"{len(cached)} track(s), {enriched} enriched, saved {app.store.updated_at(key)}",
                )
            )

        if validate_providers_online:
            try:
                validate_spotify(settings.spotify)
                checks.append(ok_line("Spotify (network)"))
            except RuntimeError as exc:
                ok = False
                checks.append(error("Spotify (network)", str(exc)))
        else:
            checks.append(skipped("Spotify (network)", "pass --providers"))
    finally:
        app.close()

    return DoctorReport(ok=ok, checks=checks)
