import errno
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from lock_detector.engine.types import ScreenState
from lock_detector.providers.marker import (
    MarkerFileOracle,
    create_posix,
    create_with_complete_protection,
    is_protection_denied,
)


def _oracle(tmp_path) -> MarkerFileOracle:
    return MarkerFileOracle(tmp_path / "group" / "protected", protection=create_posix)


def test_initialize_creates_empty_marker(tmp_path):
    oracle = _oracle(tmp_path)

    assert oracle.initialize() is True
    assert oracle.path.exists()
    assert oracle.path.read_bytes() == b""


def test_initialize_is_idempotent(tmp_path):
    oracle = _oracle(tmp_path)
    protection = MagicMock(side_effect=create_posix)
    oracle._create = protection

    assert oracle.initialize() is True
    assert oracle.initialize() is True
    assert oracle.path.exists()
    assert protection.call_count == 1


def test_initialize_does_not_rewrite_existing_marker(tmp_path):
    oracle = _oracle(tmp_path)
    oracle.path.parent.mkdir(parents=True)
    oracle.path.write_bytes(b"keep")

    assert oracle.initialize() is True
    assert oracle.path.read_bytes() == b"keep"


def test_initialize_reports_creation_failure(tmp_path):
    oracle = MarkerFileOracle(
        tmp_path / "protected",
        protection=MagicMock(side_effect=PermissionError(errno.EPERM, "locked")),
    )

    assert oracle.initialize() is False
    assert not oracle.path.exists()


def test_initialize_reports_false_from_protection(tmp_path):
    oracle = MarkerFileOracle(tmp_path / "protected", protection=MagicMock(return_value=False))
    assert oracle.initialize() is False


def test_create_race_counts_as_created(tmp_path):
    oracle = MarkerFileOracle(
        tmp_path / "protected",
        protection=MagicMock(side_effect=FileExistsError(errno.EEXIST, "exists")),
    )
    assert oracle.initialize() is True


def test_resolve_absent_marker_created_is_unlocked(tmp_path):
    oracle = _oracle(tmp_path)

    assert oracle.resolve() == ScreenState.UNLOCKED
    assert oracle.path.exists()


def test_resolve_absent_marker_creation_fails_is_unknown(tmp_path):
    oracle = MarkerFileOracle(
        tmp_path / "protected",
        protection=MagicMock(side_effect=OSError(errno.ENOSPC, "full")),
    )
    assert oracle.resolve() == ScreenState.UNKNOWN


def test_resolve_readable_marker_is_unlocked(tmp_path):
    oracle = _oracle(tmp_path)
    oracle.initialize()

    assert oracle.resolve() == ScreenState.UNLOCKED


def test_resolve_protection_denied_is_locked(tmp_path):
    oracle = _oracle(tmp_path)
    oracle.initialize()

    with patch.object(Path, "read_bytes", side_effect=PermissionError(errno.EPERM, "locked")):
        assert oracle.resolve() == ScreenState.LOCKED


def test_resolve_plain_permission_denied_is_unknown(tmp_path):
    oracle = _oracle(tmp_path)
    oracle.initialize()

    # A chmod'd marker or a sandbox denial is not a locked device.
    with patch.object(Path, "read_bytes", side_effect=PermissionError(errno.EACCES, "denied")):
        assert oracle.resolve() == ScreenState.UNKNOWN


def test_resolve_other_io_error_is_unknown(tmp_path):
    oracle = _oracle(tmp_path)
    oracle.initialize()

    with patch.object(Path, "read_bytes", side_effect=OSError(errno.EIO, "io error")):
        assert oracle.resolve() == ScreenState.UNKNOWN

    with patch.object(Path, "read_bytes", side_effect=IsADirectoryError(errno.EISDIR, "dir")):
        assert oracle.resolve() == ScreenState.UNKNOWN


def test_resolve_marker_removed_between_checks_is_unknown(tmp_path):
    oracle = _oracle(tmp_path)
    oracle.initialize()

    with patch.object(Path, "read_bytes", side_effect=FileNotFoundError(errno.ENOENT, "gone")):
        assert oracle.resolve() == ScreenState.UNKNOWN


def test_name_too_long_is_reported_not_raised(tmp_path):
    oracle = MarkerFileOracle(tmp_path / ("x" * 300), protection=create_posix)

    assert oracle.initialize() is False
    assert oracle.resolve() == ScreenState.UNKNOWN
    assert oracle.exists is False


def test_uninspectable_marker_is_reported_not_raised(tmp_path):
    protection = MagicMock(side_effect=create_posix)
    oracle = MarkerFileOracle(tmp_path / "protected", protection=protection)

    with patch.object(Path, "exists", side_effect=PermissionError(errno.EACCES, "parent")):
        assert oracle.initialize() is False
        assert oracle.resolve() == ScreenState.UNKNOWN
        assert oracle.exists is False

    protection.assert_not_called()


def test_is_protection_denied():
    assert is_protection_denied(PermissionError(errno.EPERM, "x"))
    assert not is_protection_denied(PermissionError(errno.EACCES, "x"))
    assert not is_protection_denied(PermissionError(errno.EROFS, "x"))
    assert not is_protection_denied(OSError(errno.EIO, "x"))


def _foundation(*, exists: bool = False, created: bool = True) -> MagicMock:
    foundation = MagicMock()
    manager = foundation.NSFileManager.defaultManager.return_value
    manager.fileExistsAtPath_.return_value = exists
    manager.createFileAtPath_contents_attributes_.return_value = created
    return foundation


def test_complete_protection_creates_marker(tmp_path):
    foundation = _foundation()
    path = tmp_path / "protected"

    with patch.dict(sys.modules, {"Foundation": foundation}):
        assert create_with_complete_protection(path) is True

    manager = foundation.NSFileManager.defaultManager.return_value
    target, contents, attributes = manager.createFileAtPath_contents_attributes_.call_args[0]
    assert target == str(path)
    assert contents is foundation.NSData.data.return_value
    assert attributes == {foundation.NSFileProtectionKey: foundation.NSFileProtectionComplete}


def test_complete_protection_existing_marker_counts_as_created(tmp_path):
    foundation = _foundation(exists=True)
    oracle = MarkerFileOracle(tmp_path / "protected", protection=create_with_complete_protection)

    with patch.dict(sys.modules, {"Foundation": foundation}):
        with pytest.raises(FileExistsError):
            create_with_complete_protection(oracle.path)
        assert oracle.initialize() is True

    manager = foundation.NSFileManager.defaultManager.return_value
    manager.createFileAtPath_contents_attributes_.assert_not_called()


def test_complete_protection_refused_while_locked(tmp_path):
    oracle = MarkerFileOracle(tmp_path / "protected", protection=create_with_complete_protection)

    with patch.dict(sys.modules, {"Foundation": _foundation(created=False)}):
        assert create_with_complete_protection(oracle.path) is False
        assert oracle.initialize() is False
        assert oracle.resolve() == ScreenState.UNKNOWN


def test_complete_protection_without_foundation(tmp_path):
    oracle = MarkerFileOracle(tmp_path / "protected", protection=create_with_complete_protection)

    with patch.dict(sys.modules, {"Foundation": None}):
        assert oracle.initialize() is False
