"""Synchronous observer channel used by the engine and the batch pipeline.

Every published payload is handed to each subscriber in registration
order, in the caller's execution context. A subscriber that raises is
logged and skipped; the publisher and the remaining subscribers are not
affected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class EventChannel(Generic[T]):
    """Fan-out of one payload type to any number of callbacks."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: list[Callable[[T], None]] = []

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback* and return a function that removes it.

        Registering the same callable twice is a no-op.
        """
        if callback not in self._subscribers:
            self._subscribers.append(callback)
            log.debug("[%s] subscriber added (%d total)", self.name, len(self._subscribers))

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        """Remove *callback*; no-op when it is not registered."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)
            log.debug("[%s] subscriber removed (%d left)", self.name, len(self._subscribers))

    def publish(self, payload: T) -> int:
        """Deliver *payload* to every subscriber; return how many succeeded."""
        delivered = 0
        # Copy: a callback may unsubscribe itself while being notified.
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception:
                log.exception("[%s] subscriber %r failed", self.name, callback)
                continue
            delivered += 1
        return delivered
