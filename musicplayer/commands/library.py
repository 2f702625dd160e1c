from __future__ import annotations

from ..app import MusicPlayerApp
from ..provider import AudioState
from .output import render_tracks, render_tracks_json


async def sync(app: MusicPlayerApp) -> AudioState:
    async with app.get_provider() as provider:
        return await provider.mount()


def show(state_or_tracks, *, json_output: bool = False) -> None:
    tracks = (
        state_or_tracks.audio_files
        if isinstance(state_or_tracks, AudioState)
        else state_or_tracks
    )
    if json_output:
        print(render_tracks_json(tracks))
        return
    for line in render_tracks(tracks):
        print(line)


def cached(app: MusicPlayerApp, *, json_output: bool = False) -> bool:
    library = app.enricher.load_cached()
    if library is None:
        print("No cached library.")
        return False
    show(library, json_output=json_output)
    return True


def clear_cache(app: MusicPlayerApp) -> None:
    if app.enricher.clear_cache():
        print("Cleared cached library.")
    else:
        print("No cached library to clear.")
