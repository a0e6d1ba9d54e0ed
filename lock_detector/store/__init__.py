from .config import default_config_toml, ensure_default_config_file, get_config_path, load_config
from .paths import get_config_dir, get_group_dir, marker_path

__all__ = [
    "default_config_toml",
    "ensure_default_config_file",
    "get_config_path",
    "load_config",
    "get_config_dir",
    "get_group_dir",
    "marker_path",
]
