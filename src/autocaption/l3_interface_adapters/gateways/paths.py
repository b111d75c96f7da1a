"""Where autocaption looks for user configuration."""

from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_path

APP_NAME = 'autocaption'

CONFIG_DIR = user_config_path(APP_NAME)
CONFIG_FILENAMES = ('config.yaml', 'config.yml')

DEFAULT_CONFIG_PATHS = [CONFIG_DIR / name for name in CONFIG_FILENAMES]


def find_user_config(candidates: list[Path] | None = None) -> Path | None:
    """First existing file among *candidates* (the user config dir by default)."""
    for path in DEFAULT_CONFIG_PATHS if candidates is None else candidates:
        if path.is_file():
            return path
    return None
