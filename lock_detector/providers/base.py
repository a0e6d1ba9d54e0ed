from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from ..engine.types import ScreenState


class NotificationBus(Protocol):
    """Somewhere lock/unlock notifications can be observed by name."""

    def add_observer(self, name: str, callback: Callable[[], None]) -> Any: ...

    def remove_observer(self, token: Any) -> None: ...


class Platform(Protocol):
    """Capability descriptor for one platform family.

    Resolved once per process; every lock query and observation goes through
    it instead of probing the OS at call time.
    """

    locked_event: str
    unlocked_event: str

    def direct_state(self) -> ScreenState:
        """Authoritative lock state for a main process."""
        ...

    def notification_bus(self) -> NotificationBus | None: ...


class NullPlatform:
    """Platform without any lock signal."""

    locked_event = ""
    unlocked_event = ""

    def direct_state(self) -> ScreenState:
        return ScreenState.UNKNOWN

    def notification_bus(self) -> NotificationBus | None:
        return None
