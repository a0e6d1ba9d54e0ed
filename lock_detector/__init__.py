"""Detect whether the screen is locked, and observe lock/unlock transitions.

    import lock_detector

    state = lock_detector.current_state()

    subscription = lock_detector.observe_state_changes(print)
    ...
    subscription.release()
"""

from .detector import (
    LockDetector,
    current_state,
    default_detector,
    default_platform,
    initialize,
    is_app_extension,
    is_widget_extension,
    observe_state_changes,
    protected_file_path,
)
from .engine.context import ProcessMetadata
from .engine.observer import Subscription
from .engine.types import Config, ExecutionContext, ScreenState
from .providers.mobile import MobilePlatform, NotificationCenter

__all__ = [
    "Config",
    "ExecutionContext",
    "LockDetector",
    "MobilePlatform",
    "NotificationCenter",
    "ProcessMetadata",
    "ScreenState",
    "Subscription",
    "current_state",
    "default_detector",
    "default_platform",
    "initialize",
    "is_app_extension",
    "is_widget_extension",
    "observe_state_changes",
    "protected_file_path",
]
