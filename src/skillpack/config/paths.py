"""Where configuration layers live on disk.

Three layers, lowest priority first:

    system   /etc/skillpack/config.yaml        %PROGRAMDATA%\\skillpack\\config.yaml
    user     $XDG_CONFIG_HOME/skillpack/...    %APPDATA%\\skillpack\\config.yaml
             (~/.config/skillpack/ if it exists, else ~/.skillpack/)
    project  <project>/.skillpack/config.yaml
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "skillpack"
PROJECT_DIRNAME = ".skillpack"


def _windows_dir(variable: str) -> Path | None:
    base = os.environ.get(variable)
    return Path(base) / APP_NAME if base else None


def get_system_config_path() -> Path | None:
    """System-wide config file, or None when the platform gives no location."""
    if sys.platform == "win32":
        directory = _windows_dir("PROGRAMDATA")
    else:
        directory = Path("/etc") / APP_NAME
    return directory / CONFIG_FILENAME if directory else None


def get_user_config_path() -> Path | None:
    """Per-user config file. The file may not exist."""
    if sys.platform == "win32":
        directory = _windows_dir("APPDATA")
        return directory / CONFIG_FILENAME if directory else None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME

    home = Path.home()
    if (home / ".config").exists():
        return home / ".config" / APP_NAME / CONFIG_FILENAME
    return home / PROJECT_DIRNAME / CONFIG_FILENAME


def get_project_config_path(project_root: str | Path) -> Path:
    return Path(project_root) / PROJECT_DIRNAME / CONFIG_FILENAME


def find_project_root(start: str | Path) -> Path | None:
    """Nearest directory at or above ``start`` holding a ``.skillpack/config.yaml``.

    The home directory is not treated as a project, since its
    ``.skillpack/`` holds the user layer.
    """
    home = Path.home().resolve()
    current = Path(start).resolve()
    for candidate in (current, *current.parents):
        if candidate == home:
            return None
        if get_project_config_path(candidate).is_file():
            return candidate
    return None


def get_config_paths(project_root: str | Path | None = None) -> list[Path]:
    """Config files to merge, lowest priority first: system, user, project."""
    candidates = [get_system_config_path(), get_user_config_path()]
    if project_root:
        candidates.append(get_project_config_path(project_root))
    return [path for path in candidates if path is not None]
