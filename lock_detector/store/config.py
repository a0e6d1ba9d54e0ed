from __future__ import annotations

import tomllib
from pathlib import Path

from lock_detector.engine.types import Config
from lock_detector.store.paths import get_config_dir


def get_config_path() -> Path:
    return get_config_dir() / "config.toml"


def default_config_toml(config: Config | None = None) -> str:
    cfg = config or Config()
    points = ", ".join(f'"{p}"' for p in cfg.widget_extension_points)
    return (
        "# lock-detector configuration\n"
        "# Location: ~/.config/lock-detector/config.toml (or XDG_CONFIG_HOME)\n"
        "\n"
        "# Process group sharing the marker file\n"
        f'group = "{cfg.group}"\n'
        f'marker_name = "{cfg.marker_name}"\n'
        '# marker_path = "/explicit/path/to/marker"\n'
        "\n"
        "[context]\n"
        "# Extension points that only allow timeline-driven code\n"
        f"widget_extension_points = [{points}]\n"
        "\n"
        "[linux]\n"
        "# Pin a logind session instead of looking up the active one\n"
        '# session_id = "2"\n'
    )


def ensure_default_config_file(path: Path | None = None) -> Path:
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    if not config_path.exists():
        config_path.write_text(default_config_toml(), encoding="utf-8")
    return config_path


def load_config(path: Path | None = None, *, create_if_missing: bool = False) -> tuple[Config, dict]:
    """Load config.toml, returning (Config, meta).

    Meta contains useful diagnostics (path, loaded, created, error).
    Values of the wrong type are ignored and the defaults kept.
    """

    config_path = path or get_config_path()
    meta: dict = {"path": str(config_path), "loaded": False, "created": False}

    if create_if_missing:
        before = config_path.exists()
        ensure_default_config_file(config_path)
        meta["created"] = not before

    if not config_path.exists():
        return Config(), meta

    try:
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        meta["error"] = f"config_read_error: {e}"
        return Config(), meta

    cfg = Config()

    group = raw.get("group")
    if isinstance(group, str) and group.strip():
        cfg.group = group.strip()

    marker_name = raw.get("marker_name")
    if isinstance(marker_name, str) and marker_name.strip():
        cfg.marker_name = marker_name.strip()

    marker_path = raw.get("marker_path")
    if isinstance(marker_path, str) and marker_path.strip():
        cfg.marker_path = marker_path.strip()

    context = raw.get("context")
    if isinstance(context, dict):
        points = context.get("widget_extension_points")
        if isinstance(points, list) and all(isinstance(p, str) for p in points):
            cfg.widget_extension_points = tuple(points)

    linux = raw.get("linux")
    if isinstance(linux, dict):
        session_id = linux.get("session_id")
        if isinstance(session_id, str | int) and not isinstance(session_id, bool):
            cfg.linux_session_id = str(session_id)

    meta["loaded"] = True
    return cfg, meta
