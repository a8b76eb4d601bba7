"""
Memory pressure notifications.
"""

import logging
from threading import Lock
from typing import Callable, List

logger = logging.getLogger(__name__)

MemoryPressureCallback = Callable[[], None]


class MemoryPressureSignal:
    """
    Event source fired when the host wants volatile caches dropped.

    Fired by the application on OS memory warnings, when moving to the
    background, or on explicit user action. Subscribers are called in
    subscription order on the notifying thread.
    """

    def __init__(self) -> None:
        self._subscribers: List[MemoryPressureCallback] = []
        self._lock = Lock()

    def subscribe(self, callback: MemoryPressureCallback) -> None:
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: MemoryPressureCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def notify(self, reason: str = "memory warning") -> int:
        """
        Call every subscriber.

        A failing subscriber is logged and does not stop the others.

        Returns:
            Number of subscribers notified.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        logger.info(f"Memory pressure ({reason}): notifying {len(subscribers)} subscriber(s)")
        for callback in subscribers:
            try:
                callback()
            except Exception as e:
                logger.error(f"Memory pressure subscriber failed: {e}", exc_info=True)
        return len(subscribers)
