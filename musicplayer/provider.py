from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .enricher import LibraryEnricher
from .models import Track
from .protocols import OnlineCheck, TokenSource

logger = logging.getLogger(__name__)

Listener = Callable[["AudioState"], None]


@dataclass(frozen=True, slots=True)
class AudioState:
    audio_files: tuple[Track, ...] = ()
    loading: bool = True


class AudioProvider:
    """Owns the library state handed to the presentation layer.

    ``initialize`` runs once per provider: it samples connectivity, serves the
    cached snapshot when offline, and otherwise scans and enriches afresh.
    """

    def __init__(
        self,
        tokens: TokenSource,
        enricher: LibraryEnricher,
        connectivity: OnlineCheck,
    ) -> None:
        self.tokens = tokens
        self.enricher = enricher
        self.connectivity = connectivity
        self.access_token: Optional[str] = None
        self._state = AudioState()
        self._listeners: list[Listener] = []
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._task: Optional[asyncio.Task[AudioState]] = None

    @property
    def state(self) -> AudioState:
        return self._state

    @property
    def audio_files(self) -> tuple[Track, ...]:
        return self._state.audio_files

    @property
    def loading(self) -> bool:
        return self._state.loading

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def initialize(self) -> AudioState:
        async with self._init_lock:
            if self._initialized:
                return self._state
            self._initialized = True
            try:
                await self._run()
            except Exception:
                logger.exception("Library initialization failed")
                raise
            finally:
                if self._state.loading:
                    self._set_state(self._state.audio_files, loading=False)
        return self._state

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        online = await loop.run_in_executor(None, self.connectivity.is_online)
        if not online:
            cached = await loop.run_in_executor(None, self.enricher.load_cached)
            if cached:
                logger.info("Offline; loaded %d track(s) from cache", len(cached))
                self._set_state(cached, loading=False)
            else:
                logger.info("Offline and no cached library available")
            return
        self.access_token = await loop.run_in_executor(None, self.tokens.fetch_token)
        library = await self.enricher.refresh(self.access_token)
        self._set_state(library, loading=False)

    def mount(self) -> asyncio.Task[AudioState]:
        if self._task is None:
            self._task = asyncio.create_task(self.initialize())
        return self._task

    async def unmount(self) -> None:
        task, self._task = self._task, None
        self._listeners.clear()
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                logger.debug("Initialization had failed before unmount: %r", task.exception())
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("Initialization cancelled on unmount")

    async def __aenter__(self) -> "AudioProvider":
        self.mount()
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.unmount()

    def _set_state(self, library, *, loading: bool) -> None:
        self._state = AudioState(audio_files=tuple(library), loading=loading)
        for listener in list(self._listeners):
            listener(self._state)
