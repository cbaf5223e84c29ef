"""On-disk cache for a scanned PackageIndex.

The cache is a YAML file keyed by the fingerprint of the scanned roots.
A stale or unreadable cache is ignored and the caller rescans.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from filelock import FileLock

from skillpack.skills.index import PackageIndex
from skillpack.skills.schema import ScanWarning, SkillPackage

_log = logging.getLogger(__name__)

CACHE_VERSION = 1


def _warning_to_dict(warning: ScanWarning) -> dict[str, Any]:
    return {
        "message": warning.message,
        "path": str(warning.path) if warning.path else None,
        "package": warning.package,
        "kind": warning.kind,
    }


def _warning_from_dict(data: dict[str, Any]) -> ScanWarning:
    path = data.get("path")
    return ScanWarning(
        message=data.get("message", ""),
        path=Path(path) if path else None,
        package=data.get("package"),
        kind=data.get("kind", "malformed"),
    )


class IndexCache:
    """Reads and writes a PackageIndex cache file under a file lock."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock_path = self._path.with_suffix(self._path.suffix + ".lock")

    @property
    def path(self) -> Path:
        return self._path

    def load(self, fingerprint: str) -> PackageIndex | None:
        """Load the cached index if it matches ``fingerprint``.

        Returns:
            The cached PackageIndex, or None when missing, stale or invalid.
        """
        if not self._path.exists():
            return None

        with FileLock(self._lock_path, timeout=10):
            try:
                with open(self._path, encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                _log.warning("Ignoring unreadable index cache %s: %s", self._path, e)
                return None

        if not isinstance(data, dict) or data.get("version") != CACHE_VERSION:
            return None
        if data.get("fingerprint") != fingerprint:
            _log.debug("Index cache %s is stale", self._path)
            return None

        try:
            packages = [SkillPackage.from_dict(p) for p in data.get("packages", [])]
            warnings = [_warning_from_dict(w) for w in data.get("warnings", [])]
        except (KeyError, TypeError, ValueError) as e:
            _log.warning("Ignoring corrupt index cache %s: %s", self._path, e)
            return None

        _log.debug("Loaded %d skill(s) from cache %s", len(packages), self._path)
        return PackageIndex(
            packages,
            warnings=warnings,
            roots=[Path(r) for r in data.get("roots", [])],
            fingerprint=fingerprint,
        )

    def save(self, index: PackageIndex) -> None:
        """Write the index to the cache file."""
        data = {
            "version": CACHE_VERSION,
            "fingerprint": index.fingerprint,
            "roots": [str(r) for r in index.roots],
            "packages": [p.to_dict() for p in index],
            "warnings": [_warning_to_dict(w) for w in index.warnings],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self._lock_path, timeout=10):
            with open(self._path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
        _log.debug("Wrote index cache %s", self._path)

    def clear(self) -> None:
        with FileLock(self._lock_path, timeout=10):
            self._path.unlink(missing_ok=True)
