from dataclasses import dataclass, field
from enum import Enum
from typing import Final


class ScreenState(Enum):
    UNKNOWN = "unknown"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class ExecutionContext(Enum):
    MAIN_PROCESS = "main_process"
    RESTRICTED_EXTENSION = "restricted_extension"
    ULTRA_RESTRICTED_EXTENSION = "ultra_restricted_extension"


DEFAULT_GROUP: Final[str] = "lock-detector"
DEFAULT_MARKER_NAME: Final[str] = "protected"
WIDGETKIT_EXTENSION_POINT: Final[str] = "com.apple.widgetkit-extension"

# macOS distributed notifications
SCREEN_IS_LOCKED: Final[str] = "com.apple.screenIsLocked"
SCREEN_IS_UNLOCKED: Final[str] = "com.apple.screenIsUnlocked"

# iOS protected-data notifications
PROTECTED_DATA_DID_BECOME_AVAILABLE: Final[str] = "UIApplicationProtectedDataDidBecomeAvailable"
PROTECTED_DATA_WILL_BECOME_UNAVAILABLE: Final[str] = "UIApplicationProtectedDataWillBecomeUnavailable"


@dataclass
class Config:
    group: str = DEFAULT_GROUP
    marker_name: str = DEFAULT_MARKER_NAME
    marker_path: str | None = None
    widget_extension_points: tuple[str, ...] = field(
        default_factory=lambda: (WIDGETKIT_EXTENSION_POINT,)
    )
    linux_session_id: str | None = None

    def __post_init__(self):
        if not self.group:
            raise ValueError("group must not be empty")
        if not self.marker_name:
            raise ValueError("marker_name must not be empty")
        self.widget_extension_points = tuple(self.widget_extension_points)
