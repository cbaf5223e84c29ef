"""Skill tree watcher for automatic rescans during development.

Uses polling of file modification times, which is portable and needs no
extra dependencies. Any change under the engine's roots triggers a
reload; a rejected scan keeps the previous snapshot.
"""

from __future__ import annotations

import asyncio
import contextlib
import fnmatch
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from skillpack.skills.errors import SkillPackError

if TYPE_CHECKING:
    from skillpack.engine import SkillEngine

_log = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


class SkillTreeWatcher:
    """Watches skill roots for changes and republishes the engine snapshot."""

    def __init__(
        self,
        engine: SkillEngine,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        ignore_patterns: Sequence[str] = (),
    ) -> None:
        """Initialize the watcher.

        Args:
            engine: Engine whose roots are watched and which is reloaded.
            poll_interval: How often to check for changes (seconds).
            ignore_patterns: Glob patterns (relative to a root) to ignore.
        """
        self._engine = engine
        self._poll_interval = poll_interval
        self._ignore_patterns = list(ignore_patterns)
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._mtimes: dict[Path, int] = {}

    @property
    def running(self) -> bool:
        return self._running

    def _ignored(self, relative: str) -> bool:
        return any(
            fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch("/" + relative, pattern)
            for pattern in self._ignore_patterns
        )

    def _check_mtimes(self) -> dict[Path, int]:
        """Get current modification times for all files under the roots."""
        mtimes: dict[Path, int] = {}
        for root in self._engine.roots:
            if not root.is_dir():
                continue
            for path in root.rglob("*"):
                with contextlib.suppress(OSError):
                    if not path.is_file():
                        continue
                    if self._ignored(path.relative_to(root).as_posix()):
                        continue
                    mtimes[path] = path.stat().st_mtime_ns
        return mtimes

    def _detect_changes(self) -> list[Path]:
        """Paths created, modified, or deleted since the last check."""
        current = self._check_mtimes()
        changed: list[Path] = []

        for path, old_mtime in self._mtimes.items():
            new_mtime = current.get(path)
            if new_mtime is None or new_mtime != old_mtime:
                changed.append(path)

        for path in current:
            if path not in self._mtimes:
                changed.append(path)

        self._mtimes = current
        return sorted(changed)

    def prime(self) -> None:
        """Record the current state without reloading."""
        self._mtimes = self._check_mtimes()

    def check(self) -> bool:
        """Detect changes once and reload the engine if any were found.

        Returns:
            True if a new snapshot was published.
        """
        changed = self._detect_changes()
        if not changed:
            return False

        _log.info("Skill files changed: %s", [str(p) for p in changed[:10]])
        try:
            self._engine.reload()
        except SkillPackError as e:
            _log.error("Rescan rejected, keeping previous snapshot: %s", e)
            return False
        except OSError as e:
            _log.error("Error rescanning skills: %s", e)
            return False
        return True

    async def _poll_loop(self) -> None:
        self.prime()

        while self._running:
            await asyncio.sleep(self._poll_interval)

            if not self._running:
                break

            self.check()

    def start(self) -> None:
        """Start watching for changes.

        Creates an async task that polls for changes.
        Must be called from within an async context.
        """
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        _log.debug("Skill watcher started (interval=%.1fs)", self._poll_interval)

    def stop(self) -> None:
        """Stop watching for changes."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
        _log.debug("Skill watcher stopped")

    async def __aenter__(self) -> SkillTreeWatcher:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        self.stop()
