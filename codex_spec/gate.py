"""Dependency gate: which prerequisites of a task are not yet completed."""

from __future__ import annotations

from typing import List, Set

from .models import Task


def _completed_ids(tasks: List[Task]) -> Set[str]:
    return {task.id for task in tasks if task.is_completed()}


def unmet_dependencies(task: Task, tasks: List[Task]) -> List[str]:
    """Dependency ids that are missing from ``tasks`` or not completed."""
    completed = _completed_ids(tasks)
    unmet: List[str] = []
    for dep_id in task.dependencies:
        if dep_id not in completed and dep_id not in unmet:
            unmet.append(dep_id)
    return unmet


def satisfied_dependencies(task: Task, tasks: List[Task]) -> List[str]:
    """Dependency ids whose task is completed."""
    completed = _completed_ids(tasks)
    satisfied: List[str] = []
    for dep_id in task.dependencies:
        if dep_id in completed and dep_id not in satisfied:
            satisfied.append(dep_id)
    return satisfied
