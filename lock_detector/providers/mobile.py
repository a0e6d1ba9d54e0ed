from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from threading import Lock

from ..engine.types import (
    PROTECTED_DATA_DID_BECOME_AVAILABLE,
    PROTECTED_DATA_WILL_BECOME_UNAVAILABLE,
    ScreenState,
)

logger = logging.getLogger(__name__)


class NotificationCenter:
    """Same-process notification bus.

    The host application posts the protected-data notifications it receives
    from the OS; observers run synchronously on the posting thread, in
    registration order.
    """

    def __init__(self):
        self._observers: dict[int, tuple[str, Callable[[], None]]] = {}
        self._tokens = itertools.count(1)
        self._lock = Lock()

    def add_observer(self, name: str, callback: Callable[[], None]) -> int:
        with self._lock:
            token = next(self._tokens)
            self._observers[token] = (name, callback)
        return token

    def remove_observer(self, token: int) -> None:
        with self._lock:
            self._observers.pop(token, None)

    def observer_count(self, name: str | None = None) -> int:
        with self._lock:
            return sum(1 for event, _ in self._observers.values() if name is None or event == name)

    def post(self, name: str) -> None:
        with self._lock:
            callbacks = [cb for event, cb in self._observers.values() if event == name]
        logger.debug("Posting %s to %d observer(s)", name, len(callbacks))
        for callback in callbacks:
            callback()


class MobilePlatform:
    """Mobile provider: protected-data availability as the lock signal.

    `protected_data_available` is the host's accessor for the application's
    "is protected data available" flag. Without it the direct state is
    UNKNOWN.
    """

    locked_event = PROTECTED_DATA_WILL_BECOME_UNAVAILABLE
    unlocked_event = PROTECTED_DATA_DID_BECOME_AVAILABLE

    def __init__(
        self,
        *,
        protected_data_available: Callable[[], bool] | None = None,
        center: NotificationCenter | None = None,
    ):
        self._protected_data_available = protected_data_available
        self.center = center or NotificationCenter()

    def direct_state(self) -> ScreenState:
        if self._protected_data_available is None:
            return ScreenState.UNKNOWN
        return ScreenState.UNLOCKED if self._protected_data_available() else ScreenState.LOCKED

    def notification_bus(self) -> NotificationCenter:
        return self.center
