"""Layer merging for system, user and project configuration.

Later layers win key by key. Skill roots are the exception: every layer
contributes its roots, so a project can add a local plugin directory
without repeating the roots declared in the user config.
"""

from __future__ import annotations

from typing import Any

# Dotted keys whose list values accumulate across layers
ACCUMULATING_KEYS: frozenset[str] = frozenset({"index.roots"})


def _union(first: list[Any], second: list[Any]) -> list[Any]:
    return list(dict.fromkeys([*first, *second]))


def deep_merge(
    base: dict[str, Any],
    override: dict[str, Any],
    accumulate: frozenset[str] = frozenset(),
    _prefix: str = "",
) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Mappings merge recursively. A None in ``override`` leaves the base
    value alone, so a layer can mention a key without clearing it. Lists
    are replaced unless their dotted key is in ``accumulate``, in which
    case the two lists are unioned in order.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        dotted = f"{_prefix}{key}"
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value, accumulate, dotted + ".")
        elif dotted in accumulate and isinstance(current, list) and isinstance(value, list):
            merged[key] = _union(current, value)
        else:
            merged[key] = value
    return merged


def merge_configs(
    *layers: dict[str, Any], accumulate: frozenset[str] = ACCUMULATING_KEYS
) -> dict[str, Any]:
    """Merge config layers lowest priority first; empty layers are skipped."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer, accumulate)
    return merged
