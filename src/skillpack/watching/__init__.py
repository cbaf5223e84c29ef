"""Development-mode watching of skill trees."""

from skillpack.watching.watcher import SkillTreeWatcher

__all__ = ["SkillTreeWatcher"]
