from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional, Sequence

from ..models import Track


@dataclass(frozen=True, slots=True)
class CheckLine:
    label: str
    status: str
    detail: Optional[str] = None

    def render(self) -> str:
        if self.detail:
            return f"{self.label}: {self.status} ({self.detail})"
        return f"{self.label}: {self.status}"


def ok(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "OK", detail).render()


def warning(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "WARNING", detail).render()


def error(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "ERROR", detail).render()


def skipped(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "SKIPPED", detail).render()


def _cell(value: Optional[str], width: int) -> str:
    text = value or "-"
    if len(text) > width:
        text = text[: width - 1] + "…"
    return text.ljust(width)


def render_tracks(tracks: Sequence[Track]) -> list[str]:
    if not tracks:
        return ["(library is empty)"]
    lines = [
        f"{_cell('Filename', 36)}  {_cell('Artist', 24)}  {_cell('Album', 28)}  Cover",
        "-" * 100,
    ]
    for track in tracks:
        cover = "yes" if track.album_cover else "no"
        lines.append(
            f"{_cell(track.filename, 36)}  {_cell(track.artist, 24)}  {_cell(track.album, 28)}  {cover}"
        )
    enriched = sum(1 for track in tracks if track.is_enriched)
    lines.append(f"{len(tracks)} track(s), {enriched} enriched")
    return lines


def render_tracks_json(tracks: Sequence[Track]) -> str:
    return json.dumps([track.to_record() for track in tracks], ensure_ascii=False, indent=2)
