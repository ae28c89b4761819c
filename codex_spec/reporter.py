"""Read-only aggregation of task progress, plus the console renderings."""

from __future__ import annotations

from typing import Dict, List, Optional

from .models import PhaseProgress, StatusReport, Task, TaskStatus
from .store import TaskStore, find_dependency_cycle


class StatusReporter:
    """Aggregate counts over the task document without modifying it."""

    def __init__(self, store: TaskStore):
        self.store = store

    def check_status(self) -> StatusReport:
        report = StatusReport()
        for task in self.store.load():
            report.total += 1
            if task.is_completed():
                report.completed += 1
            elif task.status == TaskStatus.IN_PROGRESS:
                report.in_progress += 1
            elif task.status == TaskStatus.FAILED:
                report.failed += 1
            else:
                report.pending += 1
        return report

    def plan_summary(self) -> List[PhaseProgress]:
        """Completion per phase, phases in first-seen order."""
        phases: Dict[Optional[str], PhaseProgress] = {}
        for task in self.store.load():
            progress = phases.setdefault(task.phase, PhaseProgress(task.phase))
            progress.total += 1
            if task.is_completed():
                progress.completed += 1
        return list(phases.values())

    def dependency_cycle(self) -> Optional[List[str]]:
        """First dependency cycle in the document, if any."""
        return find_dependency_cycle(self.store.load())


def render_status(report: StatusReport) -> str:
    rows = [
        ("Completed", "completed"),
        ("In Progress", "in_progress"),
        ("Failed", "failed"),
        ("Pending", "pending"),
    ]
    lines = ["Task Status", f"  Total: {report.total}"]
    for label, bucket in rows:
        lines.append(f"  {label}: {getattr(report, bucket)} ({report.percentage(bucket)}%)")
    return "\n".join(lines)


def render_plan_summary(progress: List[PhaseProgress]) -> str:
    lines = ["Plan Summary by Phase"]
    lines.extend(f"  {item.describe()}" for item in progress)
    return "\n".join(lines)


def _truncate(value: str, width: int) -> str:
    return value if len(value) <= width else value[: max(0, width - 1)] + "…"


def render_task_table(tasks: List[Task]) -> str:
    """Fixed-width ID / Title / Phase / Status table."""
    widths = (10, 40, 14, 10)
    header = ("ID", "Title", "Phase", "Status")
    lines = [
        "  " + " ".join(name.ljust(width) for name, width in zip(header, widths)),
        "  " + " ".join("-" * width for width in widths),
    ]
    for task in tasks:
        cells = (task.id, _truncate(task.title, widths[1]), task.phase or "", task.display_status)
        lines.append("  " + " ".join(str(cell).ljust(width) for cell, width in zip(cells, widths)).rstrip())
    return "\n".join(lines)
