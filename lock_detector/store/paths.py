from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

from lock_detector.engine.types import DEFAULT_GROUP, Config

APP_NAME = "lock-detector"


def get_config_dir() -> Path:
    return Path(user_config_dir(APP_NAME))


def get_group_dir(group: str = DEFAULT_GROUP) -> Path:
    """Writable directory shared by every process of `group`."""

    return Path(user_data_dir(group))


def marker_path(config: Config) -> Path:
    if config.marker_path:
        return Path(config.marker_path).expanduser()
    return get_group_dir(config.group) / config.marker_name
