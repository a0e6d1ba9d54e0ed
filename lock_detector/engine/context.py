from __future__ import annotations

import logging
import plistlib
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from xml.parsers.expat import ExpatError

from .types import WIDGETKIT_EXTENSION_POINT, ExecutionContext

logger = logging.getLogger(__name__)

APP_EXTENSION_SUFFIX = ".appex"
_BUNDLE_SUFFIXES = (".app", APP_EXTENSION_SUFFIX)


@dataclass(frozen=True)
class ProcessMetadata:
    """Packaging metadata of the running process.

    `bundle_path` is the enclosing bundle directory (None when the interpreter
    is not running from a bundle) and `info` is that bundle's Info.plist.
    """

    bundle_path: str | None = None
    info: Mapping | None = None

    @classmethod
    def from_bundle(cls, bundle_path: str | Path) -> ProcessMetadata:
        bundle = Path(bundle_path)
        info = _load_info_plist(bundle)
        return cls(bundle_path=str(bundle), info=info)

    @classmethod
    def discover(cls, executable: str | None = None) -> ProcessMetadata:
        """Find the bundle hosting `executable` (default: sys.executable)."""

        exe = executable if executable is not None else sys.executable
        if not exe:
            return cls()

        for parent in Path(exe).parents:
            if parent.suffix in _BUNDLE_SUFFIXES:
                return cls.from_bundle(parent)

        return cls()


def _load_info_plist(bundle: Path) -> Mapping | None:
    # macOS bundles keep it under Contents/, iOS bundles at the top level.
    for candidate in (bundle / "Contents" / "Info.plist", bundle / "Info.plist"):
        try:
            with candidate.open("rb") as f:
                raw = plistlib.load(f)
        except FileNotFoundError:
            continue
        except (OSError, plistlib.InvalidFileException, ValueError, ExpatError) as e:
            logger.debug("Unreadable Info.plist at %s: %s", candidate, e)
            return None
        return raw if isinstance(raw, Mapping) else None
    return None


def _extension_point(info: Mapping | None) -> str | None:
    if not isinstance(info, Mapping):
        return None
    extension = info.get("NSExtension")
    if not isinstance(extension, Mapping):
        return None
    point = extension.get("NSExtensionPointIdentifier")
    return point if isinstance(point, str) else None


def classify(
    metadata: ProcessMetadata,
    *,
    widget_extension_points: Iterable[str] = (WIDGETKIT_EXTENSION_POINT,),
) -> ExecutionContext:
    """Classify the execution context from packaging metadata.

    Two independent signals are combined: the bundle shape tells an extension
    from a full application, and the declared extension point tells a widget
    extension from other extensions. Never raises; anything unrecognised
    falls back to MAIN_PROCESS.
    """

    bundle_path = metadata.bundle_path
    if not isinstance(bundle_path, str) or not bundle_path.rstrip("/").endswith(
        APP_EXTENSION_SUFFIX
    ):
        return ExecutionContext.MAIN_PROCESS

    if _extension_point(metadata.info) in set(widget_extension_points):
        return ExecutionContext.ULTRA_RESTRICTED_EXTENSION

    return ExecutionContext.RESTRICTED_EXTENSION
