"""Configuration management for skillpack.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/skillpack/ or %PROGRAMDATA%)
- User-level config (~/.config/skillpack/ or %APPDATA%)
- Project-level config ($project_root/.skillpack/)
- Environment variable overrides (highest priority)

Example usage:
    from skillpack.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.index.roots)
    print(config.compose.budget)
"""

from skillpack.config.loader import (
    config_sources,
    get_config,
    load_config,
    on_config_reload,
    reload_config,
    reset_config,
)
from skillpack.config.paths import (
    find_project_root,
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from skillpack.config.schema import (
    ActivationConfig,
    ComposeConfig,
    Config,
    IndexConfig,
    LoggingConfig,
    MatchWeights,
    ReferenceConfig,
    WatchConfig,
)

__all__ = [
    # Main API
    "Config",
    "config_sources",
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    "on_config_reload",
    # Schema types
    "IndexConfig",
    "ReferenceConfig",
    "ActivationConfig",
    "MatchWeights",
    "ComposeConfig",
    "WatchConfig",
    "LoggingConfig",
    # Path utilities
    "find_project_root",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
