"""
macOS lock state via Quartz session info and distributed notifications
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..engine.types import SCREEN_IS_LOCKED, SCREEN_IS_UNLOCKED, ScreenState

logger = logging.getLogger(__name__)

SESSION_SCREEN_IS_LOCKED = "CGSSessionScreenIsLocked"


class MacOSPlatform:
    locked_event = SCREEN_IS_LOCKED
    unlocked_event = SCREEN_IS_UNLOCKED

    def __init__(self):
        self._bus: DistributedNotificationBus | None = None

    def direct_state(self) -> ScreenState:
        """
        Read the lock flag from the current session dictionary.

        Returns:
            LOCKED / UNLOCKED from CGSSessionScreenIsLocked (missing key means
            unlocked), UNKNOWN when there is no GUI session at all
        """
        try:
            from Quartz import CGSessionCopyCurrentDictionary
        except ImportError as e:
            logger.warning("Quartz not available, cannot read session: %s", e)
            return ScreenState.UNKNOWN

        session_dict = CGSessionCopyCurrentDictionary()
        if session_dict is None:
            logger.debug("No CGSession dictionary (not a GUI session)")
            return ScreenState.UNKNOWN

        screen_locked = session_dict.get(SESSION_SCREEN_IS_LOCKED)
        if screen_locked is None:
            return ScreenState.UNLOCKED
        return ScreenState.LOCKED if bool(screen_locked) else ScreenState.UNLOCKED

    def notification_bus(self) -> DistributedNotificationBus:
        if self._bus is None:
            self._bus = DistributedNotificationBus()
        return self._bus


class DistributedNotificationBus:
    """
    System-wide notification center shared by all processes

    Blocks are delivered on the main operation queue, so the host needs a
    running main run loop (AppKit or PyObjCTools.AppHelper).
    """

    def _center(self):
        from Foundation import NSDistributedNotificationCenter

        return NSDistributedNotificationCenter.defaultCenter()

    def add_observer(self, name: str, callback: Callable[[], None]) -> Any:
        from Foundation import NSOperationQueue

        def block(notification) -> None:
            callback()

        return self._center().addObserverForName_object_queue_usingBlock_(
            name, None, NSOperationQueue.mainQueue(), block
        )

    def remove_observer(self, token: Any) -> None:
        self._center().removeObserver_(token)
