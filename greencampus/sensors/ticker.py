"""Tick sources for the simulation loop.

``ThreadTicker`` fires on a daemon thread at a fixed interval.
``ManualTicker`` fires only when ``advance()`` is called, which makes the
simulation deterministic in tests and in the CLI ``--ticks`` mode.

Both are idempotent: ``start`` while running and ``stop`` while stopped
are no-ops.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

log = logging.getLogger(__name__)


class Ticker(Protocol):
    @property
    def running(self) -> bool: ...

    def start(self, interval_sec: float, callback: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


class ThreadTicker:
    """Calls *callback* every *interval_sec* seconds on a background thread.

    Ticks never overlap: the next wait starts after the callback returns.
    ``stop`` prevents future ticks and waits for an in-flight one.
    """

    def __init__(self, name: str = "sensor-sim") -> None:
        self.name = name
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval_sec: float, callback: Callable[[], None]) -> None:
        if self.running:
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._loop,
            args=(interval_sec, callback, self._stop_event),
            name=self.name,
            daemon=True,
        )
        self._thread.start()
        log.info("Ticker '%s' started (interval=%.3fs)", self.name, interval_sec)

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join()
        self._thread = None
        log.info("Ticker '%s' stopped", self.name)

    def _loop(
        self,
        interval_sec: float,
        callback: Callable[[], None],
        stop_event: threading.Event,
    ) -> None:
        while not stop_event.wait(interval_sec):
            try:
                callback()
            except Exception:
                log.exception("Ticker '%s' callback failed", self.name)


class ManualTicker:
    """Ticker driven explicitly by ``advance``."""

    def __init__(self) -> None:
        self.interval_sec: float | None = None
        self.ticks = 0
        self._callback: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        return self._callback is not None

    def start(self, interval_sec: float, callback: Callable[[], None]) -> None:
        if self.running:
            return
        self.interval_sec = interval_sec
        self._callback = callback

    def stop(self) -> None:
        self._callback = None

    def advance(self, ticks: int = 1) -> int:
        """Run up to *ticks* callbacks; return how many ran.

        Stops early if a callback stops the ticker.
        """
        ran = 0
        for _ in range(ticks):
            if self._callback is None:
                break
            self._callback()
            self.ticks += 1
            ran += 1
        return ran
