from __future__ import annotations

import logging
import weakref
from collections.abc import Callable, Sequence
from typing import Any

from ..providers.base import NotificationBus, Platform
from .context import ProcessMetadata, classify
from .types import Config, ExecutionContext, ScreenState

logger = logging.getLogger(__name__)

StateHandler = Callable[[ScreenState], None]


def _remove_all(bus: NotificationBus | None, tokens: Sequence[Any]) -> None:
    if bus is None:
        return
    for token in tokens:
        try:
            bus.remove_observer(token)
        except Exception:
            logger.exception("Failed to remove observer %r", token)


class Subscription:
    """Handle owning the observer registrations of one `observe` call.

    Keep a reference for as long as notifications are wanted. `release()` may
    be called any number of times; a subscription that is garbage collected
    or used as a context manager is released automatically.
    """

    def __init__(self, bus: NotificationBus | None = None, tokens: Sequence[Any] = ()):
        self._count = len(tokens)
        # finalize runs at most once, whichever of release() or GC comes first.
        self._finalizer = weakref.finalize(self, _remove_all, bus, list(tokens))

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    @property
    def registrations(self) -> int:
        """Number of live observer registrations."""
        return 0 if self.released else self._count

    def release(self) -> None:
        self._finalizer()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


def _deliver(handler: StateHandler, state: ScreenState) -> None:
    try:
        handler(state)
    except Exception:
        logger.exception("Lock state handler %r failed for %s", handler, state.value)


class ChangeObserver:
    def __init__(self, metadata: ProcessMetadata, platform: Platform, config: Config | None = None):
        self._metadata = metadata
        self._platform = platform
        self._config = config or Config()

    def observe(self, handler: StateHandler) -> Subscription:
        """Register `handler` for lock and unlock transitions.

        Transitions are only reported to a main process. Elsewhere the returned
        subscription holds no registrations and callers have to poll.
        """

        context = classify(
            self._metadata, widget_extension_points=self._config.widget_extension_points
        )
        if context is not ExecutionContext.MAIN_PROCESS:
            logger.warning(
                "Lock transitions are not observable in %s context; poll current_state()",
                context.value,
            )
            return Subscription()

        bus = self._platform.notification_bus()
        if bus is None:
            logger.warning("Platform has no lock notification source; poll current_state()")
            return Subscription()

        locked = bus.add_observer(
            self._platform.locked_event, lambda: _deliver(handler, ScreenState.LOCKED)
        )
        unlocked = bus.add_observer(
            self._platform.unlocked_event, lambda: _deliver(handler, ScreenState.UNLOCKED)
        )
        return Subscription(bus, [locked, unlocked])
