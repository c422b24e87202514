"""Slideshow presentation state and its auto-advance timer."""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 5000


class Slideshow:
    """Current position in a photo list of known length.

    While playing and non-empty, ``run`` advances to the next photo every
    ``interval_ms``. Any change of ``current_index`` restarts the timer.
    Play/pause only affects the timer.
    """

    def __init__(self, interval_ms: int = DEFAULT_INTERVAL_MS, length: int = 0, playing: bool = True):
        self.interval_ms = interval_ms
        self.length = length
        self.current_index = 0
        self.is_playing = playing
        self._wake: asyncio.Event | None = None
        self._stopped = False

    def _poke(self) -> None:
        if self._wake is not None:
            self._wake.set()

    def _move_to(self, index: int) -> None:
        if index != self.current_index:
            self.current_index = index
            self._poke()

    # --- Controls ---

    def advance(self) -> int:
        if self.length > 0:
            self._move_to((self.current_index + 1) % self.length)
        return self.current_index

    def previous(self) -> int:
        if self.length > 0:
            self._move_to((self.current_index - 1) % self.length)
        return self.current_index

    def sync_length(self, length: int) -> int:
        """Track the photo list size. Clamps on shrink, stays put on growth."""
        was_empty = self.length == 0
        self.length = max(length, 0)
        if self.current_index >= self.length:
            self._move_to(max(self.length - 1, 0))
        elif was_empty and self.length:
            self._poke()
        return self.current_index

    def play(self) -> None:
        if not self.is_playing:
            self.is_playing = True
            self._poke()

    def pause(self) -> None:
        if self.is_playing:
            self.is_playing = False
            self._poke()

    def toggle(self) -> bool:
        if self.is_playing:
            self.pause()
        else:
            self.play()
        return self.is_playing

    def status(self) -> dict:
        return {
            "current_index": self.current_index,
            "total_photos": self.length,
            "playing": self.is_playing,
            "interval": self.interval_ms,
        }

    # --- Timer ---

    def stop(self) -> None:
        self._stopped = True
        self._poke()

    async def run(self, on_advance: Callable[[int], Awaitable[None]]) -> None:
        """Advance on a timer until ``stop`` is called."""
        self._wake = asyncio.Event()
        self._stopped = False
        while not self._stopped:
            self._wake.clear()
            if not (self.is_playing and self.length > 0):
                await self._wake.wait()
                continue
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval_ms / 1000)
            except asyncio.TimeoutError:
                self.current_index = (self.current_index + 1) % self.length
                await on_advance(self.current_index)
