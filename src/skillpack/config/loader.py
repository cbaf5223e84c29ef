"""Loading the layered YAML configuration into a typed Config.

Missing files are skipped and unreadable ones are logged and skipped, so
a broken user config never stops a scan. Values of the wrong shape fall
back to their defaults with a warning.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from skillpack.config.merge import deep_merge, merge_configs
from skillpack.config.paths import get_config_paths, get_project_config_path
from skillpack.config.schema import (
    DEFAULT_STOPWORDS,
    DEFAULT_TRIGGER_MARKERS,
    ActivationConfig,
    ComposeConfig,
    Config,
    IndexConfig,
    LoggingConfig,
    MatchWeights,
    ReferenceConfig,
    WatchConfig,
)

_log = logging.getLogger("skillpack.config")

_cached_config: Config | None = None

_reload_callbacks: list[Callable[[Config], None]] = []


def load_yaml_file(path: Path) -> dict[str, Any]:
    """One config layer as a dict; empty when the file is absent or unusable."""
    if not path.is_file():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except PermissionError:
        _log.debug("Skipping unreadable config %s", path)
        return {}
    except (OSError, yaml.YAMLError) as e:
        _log.warning("Skipping config layer %s: %s", path, e)
        return {}
    if data is not None and not isinstance(data, dict):
        _log.warning("Skipping config layer %s: top level is not a mapping", path)
        return {}
    return data or {}


def config_sources(project_root: str | Path | None = None) -> list[Path]:
    """Config files that exist and would be merged, lowest priority first."""
    return [path for path in get_config_paths(project_root) if path.is_file()]


def anchor_roots(data: dict[str, Any], base: Path) -> dict[str, Any]:
    """Make a layer's relative ``index.roots`` relative to ``base`` instead of cwd.

    Absolute roots and roots starting with ``~`` are left as written.
    """
    index = data.get("index")
    if not isinstance(index, dict) or not isinstance(index.get("roots"), list):
        return data
    roots = [
        str(base / root)
        if isinstance(root, str) and not root.startswith("~") and not Path(root).is_absolute()
        else root
        for root in index["roots"]
    ]
    return {**data, "index": {**index, "roots": roots}}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    - SKILLPACK_LOG: log file path
    - SKILLPACK_ROOTS: skill roots separated by os.pathsep
    - SKILLPACK_BUDGET: default composition budget (integer)
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("SKILLPACK_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    roots = os.environ.get("SKILLPACK_ROOTS")
    if roots:
        overrides.setdefault("index", {})["roots"] = [r for r in roots.split(os.pathsep) if r]

    budget = os.environ.get("SKILLPACK_BUDGET")
    if budget:
        try:
            overrides.setdefault("compose", {})["budget"] = int(budget)
        except ValueError:
            _log.warning("Ignoring non-integer SKILLPACK_BUDGET=%r", budget)

    return overrides


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        _log.warning("Ignoring config section %r: expected a mapping", key)
        return {}
    return value


def _str_list(value: Any, default: list[str]) -> list[str]:
    if not isinstance(value, list):
        return list(default)
    return [str(v) for v in value if v is not None]


def _number(section: dict[str, Any], key: str, default: Any, kind: type, where: str) -> Any:
    """Read ``section[key]`` as ``kind``; a missing or malformed value yields ``default``."""
    value = section.get(key)
    if value is None:
        return default
    try:
        return kind(value)
    except (TypeError, ValueError):
        _log.warning("Ignoring %s.%s=%r: expected %s", where, key, value, kind.__name__)
        return default


def _choice(section: dict[str, Any], key: str, default: str, allowed: set[str], where: str) -> str:
    value = section.get(key)
    if value is None:
        return default
    normalized = str(value).lower()
    if normalized not in allowed:
        _log.warning(
            "Ignoring %s.%s=%r: expected one of %s", where, key, value, ", ".join(sorted(allowed))
        )
        return default
    return normalized


def dict_to_config(data: dict[str, Any]) -> Config:
    """Build the typed Config from merged layer data.

    Unknown top-level keys are kept in ``Config.extra``.
    """
    index_data = _section(data, "index")
    index_defaults = IndexConfig()
    cache_path = index_data.get("cache_path")
    index = IndexConfig(
        roots=_str_list(index_data.get("roots"), []),
        descriptor=str(index_data.get("descriptor") or index_defaults.descriptor),
        variant_prefix=str(index_data.get("variant_prefix") or index_defaults.variant_prefix),
        cache_path=str(cache_path) if cache_path else None,
        max_workers=_number(index_data, "max_workers", index_defaults.max_workers, int, "index"),
    )

    refs_data = _section(data, "references")
    references = ReferenceConfig(
        max_depth=_number(refs_data, "max_depth", ReferenceConfig().max_depth, int, "references"),
    )

    activation_data = _section(data, "activation")
    weights_data = _section(activation_data, "weights")
    w = MatchWeights()
    where = "activation.weights"
    weights = MatchWeights(
        trigger=_number(weights_data, "trigger", w.trigger, float, where),
        phrase=_number(weights_data, "phrase", w.phrase, float, where),
        keyword=_number(weights_data, "keyword", w.keyword, float, where),
        name=_number(weights_data, "name", w.name, float, where),
        language_bonus=_number(weights_data, "language_bonus", w.language_bonus, float, where),
        language_penalty=_number(
            weights_data, "language_penalty", w.language_penalty, float, where
        ),
        stem_length=_number(weights_data, "stem_length", w.stem_length, int, where),
    )
    activation_defaults = ActivationConfig()
    activation = ActivationConfig(
        weights=weights,
        trigger_markers=_str_list(activation_data.get("trigger_markers"), DEFAULT_TRIGGER_MARKERS),
        stopwords=_str_list(activation_data.get("stopwords"), DEFAULT_STOPWORDS),
        min_score=_number(
            activation_data, "min_score", activation_defaults.min_score, float, "activation"
        ),
        top_k=_number(activation_data, "top_k", None, int, "activation"),
        max_selected=_number(
            activation_data, "max_selected", activation_defaults.max_selected, int, "activation"
        ),
    )

    compose_data = _section(data, "compose")
    compose_defaults = ComposeConfig()
    compose = ComposeConfig(
        budget=_number(compose_data, "budget", compose_defaults.budget, int, "compose"),
        unit=_choice(compose_data, "unit", compose_defaults.unit, {"chars", "tokens"}, "compose"),
        include_linked_files=bool(compose_data.get("include_linked_files", False)),
        truncation_marker=str(
            compose_data.get("truncation_marker", compose_defaults.truncation_marker)
        ),
    )

    watch_data = _section(data, "watch")
    watch_defaults = WatchConfig()
    watch = WatchConfig(
        enabled=bool(watch_data.get("enabled", False)),
        poll_interval=_number(
            watch_data, "poll_interval", watch_defaults.poll_interval, float, "watch"
        ),
        ignore_patterns=_str_list(watch_data.get("ignore_patterns"), watch_defaults.ignore_patterns),
    )

    log_data = _section(data, "logging")
    log_level = log_data.get("level")
    log_file = log_data.get("file")
    logging_config = LoggingConfig(
        level=str(log_level) if log_level else None,
        verbose=_number(log_data, "verbose", None, int, "logging"),
        file=str(log_file) if log_file else None,
    )

    known_keys = {"index", "references", "activation", "compose", "watch", "logging"}
    return Config(
        index=index,
        references=references,
        activation=activation,
        compose=compose,
        watch=watch,
        logging=logging_config,
        extra={k: v for k, v in data.items() if k not in known_keys},
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load the system, user and project layers, then apply SKILLPACK_* variables.

    Scalar settings come from the highest layer that sets them. Skill
    roots from every file layer are combined; SKILLPACK_ROOTS replaces
    them all. Relative roots in a file are taken relative to the project
    directory for the project layer and to the file's own directory for
    the others.

    Args:
        project_root: Project directory for project-level config.
        reload: Force reload even if cached.

    Returns:
        Merged Config object.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    configs: list[dict[str, Any]] = []
    project_path = get_project_config_path(project_root) if project_root else None

    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            # Project roots are relative to the project, other layers to their own directory
            base = Path(project_root) if path == project_path else path.parent
            configs.append(anchor_roots(config_data, base.resolve()))

    # Environment replaces roots outright instead of adding to them
    merged = deep_merge(merge_configs(*configs), env_overrides())
    config = dict_to_config(merged)

    # Cache only global config (no project_root)
    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config.

    Useful for testing or forcing a reload.
    """
    global _cached_config
    _cached_config = None


def reload_config(project_root: str | None = None) -> Config:
    """Reload config from files and notify callbacks.

    Args:
        project_root: Optional project directory.

    Returns:
        The newly loaded Config.
    """
    config = load_config(project_root=project_root, reload=True)

    for callback in _reload_callbacks:
        try:
            callback(config)
        except Exception as e:
            _log.warning("Config reload callback error: %s", e)

    return config


def on_config_reload(callback: Callable[[Config], None]) -> Callable[[], None]:
    """Register a callback to be called when config is reloaded.

    Args:
        callback: Function to call with the new Config.

    Returns:
        A function to unregister the callback.
    """
    _reload_callbacks.append(callback)

    def unregister() -> None:
        if callback in _reload_callbacks:
            _reload_callbacks.remove(callback)

    return unregister
