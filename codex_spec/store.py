"""Persistence of the task document (``tasks.json``).

The document is always read in full and written in full. Writes go to a
temporary file next to the target which then replaces it, so a reader
sees either the previous document or the new one, never a partial write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .models import Task

logger = logging.getLogger("codex_spec.store")


class TaskStoreError(Exception):
    """Base class for task document problems."""


class TaskDocumentNotFound(TaskStoreError):
    """No task document exists at the expected location."""

    def __init__(self, path: Path):
        super().__init__(f"No tasks found at {path}")
        self.path = path


class TaskNotFound(TaskStoreError):
    """The requested task id is not part of the document."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class InvalidTaskDocument(TaskStoreError):
    """The document exists but cannot be used as a task list."""


def find_by_id(tasks: Iterable[Task], task_id: str) -> Task:
    """Return the task with ``task_id`` or raise :class:`TaskNotFound`."""
    for task in tasks:
        if task.id == task_id:
            return task
    raise TaskNotFound(task_id)


def find_dependency_cycle(tasks: List[Task]) -> Optional[List[str]]:
    """Return the first dependency cycle as a closed id path, or ``None``.

    Dependencies on ids missing from the document are ignored.
    """
    graph: Dict[str, List[str]] = {task.id: task.dependencies for task in tasks}
    visiting, done = 1, 2
    state: Dict[str, int] = {}

    for start in graph:
        if state.get(start) == done:
            continue
        path: List[str] = [start]
        stack = [iter(graph[start])]
        state[start] = visiting
        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                state[path.pop()] = done
                continue
            if dep not in graph:
                continue
            if state.get(dep) == visiting:
                return path[path.index(dep):] + [dep]
            if state.get(dep) != done:
                state[dep] = visiting
                path.append(dep)
                stack.append(iter(graph[dep]))
    return None


def describe_cycle(cycle: List[str]) -> str:
    return f"Dependency cycle detected: {' -> '.join(cycle)}"


def dependency_cycle_through(tasks: List[Task], task_id: str) -> Optional[List[str]]:
    """Return a dependency path leading from ``task_id`` back to itself, or ``None``."""
    graph: Dict[str, List[str]] = {task.id: task.dependencies for task in tasks}
    if task_id not in graph:
        return None

    seen = {task_id}
    queue = [[task_id]]
    while queue:
        path = queue.pop(0)
        for dep in graph[path[-1]]:
            if dep == task_id:
                return path + [dep]
            if dep in graph and dep not in seen:
                seen.add(dep)
                queue.append(path + [dep])
    return None


def _validate(tasks: List[Task]) -> None:
    seen = set()
    for task in tasks:
        if task.id in seen:
            raise InvalidTaskDocument(f"Duplicate task id: {task.id}")
        seen.add(task.id)


class TaskStore:
    """Load and save the ordered task list of one spec."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> List[Task]:
        """Return every task in storage order.

        Only id uniqueness is enforced here. Dependency cycles are left to
        the callers: reporting still works on a cyclic document and a forced
        run can still break the cycle.
        """
        if not self.exists():
            raise TaskDocumentNotFound(self.path)

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidTaskDocument(f"{self.path} is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise InvalidTaskDocument(f"{self.path} must contain a JSON array of tasks")

        try:
            tasks = [Task.from_dict(item) for item in data]
        except ValueError as e:
            raise InvalidTaskDocument(f"{self.path}: {e}") from e

        _validate(tasks)
        return tasks

    def save(self, tasks: List[Task]) -> None:
        """Replace the whole document with ``tasks``."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([task.to_dict() for task in tasks], indent=2, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload + "\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved {len(tasks)} tasks to {self.path}")
