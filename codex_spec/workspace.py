"""Location of a spec's artifacts on disk.

Layout::

    <root>/.codex-specs/
        current/            default spec
            plan.md
            tasks.json
            logs/
        <spec-name>/        named specs
        tasks.json          legacy single-spec layout
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .store import TaskStore

logger = logging.getLogger("codex_spec.workspace")

DEFAULT_STORAGE_DIR = ".codex-specs"
CURRENT_SPEC = "current"
TASKS_FILE = "tasks.json"
PLAN_FILE = "plan.md"
LOGS_DIR = "logs"


class Workspace:
    """Resolve the spec directory of a project without creating anything."""

    def __init__(
        self,
        root: Path | str,
        spec_name: Optional[str] = None,
        storage_dir: str = DEFAULT_STORAGE_DIR,
    ):
        self.root = Path(root).expanduser().resolve()
        self.base_dir = self.root / storage_dir
        self.spec_name = spec_name
        self.spec_dir = self._resolve_spec_dir()
        logger.debug(f"Using spec directory {self.spec_dir}")

    def _resolve_spec_dir(self) -> Path:
        if self.spec_name:
            return self.base_dir / self.spec_name
        current = self.base_dir / CURRENT_SPEC
        if (current / TASKS_FILE).exists():
            return current
        if (self.base_dir / TASKS_FILE).exists():
            return self.base_dir
        return current

    @property
    def tasks_path(self) -> Path:
        return self.spec_dir / TASKS_FILE

    @property
    def plan_path(self) -> Path:
        return self.spec_dir / PLAN_FILE

    @property
    def logs_dir(self) -> Path:
        return self.spec_dir / LOGS_DIR

    def store(self) -> TaskStore:
        return TaskStore(self.tasks_path)

    def load_plan(self) -> str:
        """Plan text, or an empty string when there is no plan."""
        try:
            return self.plan_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""


def locate_project_root(start: Optional[Path] = None, storage_dir: str = DEFAULT_STORAGE_DIR) -> Optional[Path]:
    """Nearest directory at or above ``start`` that holds ``storage_dir``."""
    base = (start or Path.cwd()).resolve()
    for candidate in (base, *base.parents):
        if (candidate / storage_dir).is_dir():
            return candidate
    return None
