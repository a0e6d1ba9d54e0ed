from __future__ import annotations

import errno
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path

from ..engine.types import ScreenState

logger = logging.getLogger(__name__)

# Data Protection denies reads of a "complete" file on a locked device with
# EPERM. EACCES is ordinary POSIX permission denial and says nothing about lock state.
PROTECTION_DENIED_ERRNOS = frozenset({errno.EPERM})


def create_posix(path: Path) -> bool:
    """Create an empty marker, failing if it already exists."""

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    os.close(fd)
    return True


def create_with_complete_protection(path: Path) -> bool:
    """Create an empty marker readable only while the device is unlocked."""

    from Foundation import NSData, NSFileManager, NSFileProtectionComplete, NSFileProtectionKey

    manager = NSFileManager.defaultManager()
    if manager.fileExistsAtPath_(str(path)):
        raise FileExistsError(errno.EEXIST, "marker exists", str(path))
    return bool(
        manager.createFileAtPath_contents_attributes_(
            str(path), NSData.data(), {NSFileProtectionKey: NSFileProtectionComplete}
        )
    )


def default_protection() -> Callable[[Path], bool]:
    if sys.platform == "darwin":
        return create_with_complete_protection
    return create_posix


def is_protection_denied(error: OSError) -> bool:
    return isinstance(error, PermissionError) and error.errno in PROTECTION_DENIED_ERRNOS


class MarkerFileOracle:
    """Lock detection through an unlock-gated marker file.

    The marker is empty; only whether it can be read matters. It is created
    once and never rewritten or deleted here.
    """

    def __init__(self, path: str | Path, *, protection: Callable[[Path], bool] | None = None):
        self.path = Path(path)
        self._create = protection or default_protection()

    @property
    def exists(self) -> bool:
        return self._check_exists() is True

    def _check_exists(self) -> bool | None:
        """None when the marker's directory cannot even be inspected."""

        try:
            return self.path.exists()
        except OSError as e:
            logger.warning("Cannot inspect marker %s: %s", self.path, e)
            return None

    def _create_marker(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            created = self._create(self.path)
        except FileExistsError:
            return True
        except (OSError, ImportError) as e:
            logger.warning("Could not create marker %s: %s", self.path, e)
            return False

        if created:
            logger.debug("Created marker %s", self.path)
        else:
            logger.warning("Could not create marker %s", self.path)
        return created

    def initialize(self) -> bool:
        """Ensure the marker exists. Must first run while the device is unlocked."""

        exists = self._check_exists()
        if exists is None:
            return False
        if exists:
            return True
        return self._create_marker()

    def resolve(self) -> ScreenState:
        exists = self._check_exists()
        if exists is None:
            return ScreenState.UNKNOWN
        if not exists:
            # Creation only succeeds while unlocked.
            return ScreenState.UNLOCKED if self._create_marker() else ScreenState.UNKNOWN

        try:
            self.path.read_bytes()
        except OSError as e:
            if is_protection_denied(e):
                return ScreenState.LOCKED
            logger.debug("Marker %s unreadable for another reason: %s", self.path, e)
            return ScreenState.UNKNOWN

        return ScreenState.UNLOCKED
