from __future__ import annotations

import logging
import sys
from pathlib import Path

from lock_detector.engine.context import ProcessMetadata, classify
from lock_detector.engine.observer import ChangeObserver, StateHandler, Subscription
from lock_detector.engine.resolver import StateResolver
from lock_detector.engine.types import Config, ExecutionContext, ScreenState
from lock_detector.providers.base import NullPlatform, Platform
from lock_detector.providers.marker import MarkerFileOracle
from lock_detector.store import load_config, marker_path

logger = logging.getLogger(__name__)


def default_platform(config: Config | None = None) -> Platform:
    """Pick the capability descriptor for the running OS."""

    cfg = config or Config()

    if sys.platform == "darwin":
        from lock_detector.providers.macos import MacOSPlatform

        return MacOSPlatform()

    if sys.platform.startswith("linux"):
        from lock_detector.providers.linux import LinuxPlatform

        return LinuxPlatform(session_id=cfg.linux_session_id)

    if sys.platform == "ios":
        from lock_detector.providers.mobile import MobilePlatform

        # The host wires the protected-data flag and posts notifications.
        return MobilePlatform()

    return NullPlatform()


class LockDetector:
    """Process-wide lock detection facade.

    Build one per process (or use the module-level helpers, which share one)
    and pass it to whoever needs the screen state.
    """

    def __init__(
        self,
        *,
        config: Config | None = None,
        metadata: ProcessMetadata | None = None,
        platform: Platform | None = None,
        oracle: MarkerFileOracle | None = None,
    ):
        self.config = config or Config()
        self.metadata = metadata if metadata is not None else ProcessMetadata.discover()
        self.platform = platform if platform is not None else default_platform(self.config)
        self.oracle = oracle if oracle is not None else MarkerFileOracle(marker_path(self.config))

        self._resolver = StateResolver(self.metadata, self.platform, self.oracle, self.config)
        self._observer = ChangeObserver(self.metadata, self.platform, self.config)

        logger.debug(
            "Lock detector ready: context=%s platform=%s marker=%s",
            self.context.value,
            type(self.platform).__name__,
            self.oracle.path,
        )

    @classmethod
    def from_config_file(cls, path: Path | None = None, **kwargs) -> LockDetector:
        config, meta = load_config(path)
        if meta.get("error"):
            logger.warning("Ignoring config %s: %s", meta.get("path"), meta.get("error"))
        return cls(config=config, **kwargs)

    @property
    def context(self) -> ExecutionContext:
        return classify(self.metadata, widget_extension_points=self.config.widget_extension_points)

    @property
    def is_app_extension(self) -> bool:
        return self.context is not ExecutionContext.MAIN_PROCESS

    @property
    def is_widget_extension(self) -> bool:
        return self.context is ExecutionContext.ULTRA_RESTRICTED_EXTENSION

    @property
    def protected_file_path(self) -> str:
        return str(self.oracle.path)

    def initialize(self) -> bool:
        """Create the marker file. Call early, while the device is unlocked."""

        return self.oracle.initialize()

    def current_state(self) -> ScreenState:
        return self._resolver.current_state()

    def observe_state_changes(self, handler: StateHandler) -> Subscription:
        return self._observer.observe(handler)


_default: LockDetector | None = None


def default_detector() -> LockDetector:
    global _default
    if _default is None:
        _default = LockDetector.from_config_file()
    return _default


def current_state() -> ScreenState:
    return default_detector().current_state()


def observe_state_changes(handler: StateHandler) -> Subscription:
    return default_detector().observe_state_changes(handler)


def initialize() -> bool:
    return default_detector().initialize()


def is_app_extension() -> bool:
    return default_detector().is_app_extension


def is_widget_extension() -> bool:
    return default_detector().is_widget_extension


def protected_file_path() -> str:
    return default_detector().protected_file_path
