"""Data models for codex-spec task execution.

This module contains the core data structures used throughout the
orchestrator: tasks as persisted in ``tasks.json``, changed-file records
inferred from generator transcripts, and status aggregates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class TaskStatus:
    """Stored values of a task's ``status`` field."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Return an ISO-8601 UTC timestamp such as ``2024-05-01T10:00:00.000Z``."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# Persisted camelCase key for each optional attribute.
_OPTIONAL_FIELDS = {
    "technical_notes": "technicalNotes",
    "started_at": "startedAt",
    "completed_at": "completedAt",
    "failed_at": "failedAt",
    "previewed_at": "previewedAt",
    "result": "result",
    "artifacts": "artifacts",
    "error": "error",
    "preview": "preview",
}

_KNOWN_KEYS = {
    "id",
    "title",
    "description",
    "files",
    "dependencies",
    "acceptanceCriteria",
    "phase",
    "complexity",
    "status",
    *_OPTIONAL_FIELDS.values(),
}


@dataclass(slots=True)
class Task:
    """A unit of planned work as stored in ``tasks.json``."""

    id: str
    title: str = ""
    description: str = ""
    files: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    acceptance_criteria: List[str] = field(default_factory=list)
    phase: Optional[str] = None
    complexity: Optional[str] = None
    status: Optional[str] = TaskStatus.PENDING
    technical_notes: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    failed_at: Optional[str] = None
    previewed_at: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    artifacts: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    preview: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted record, omitting unset optional fields."""
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "files": list(self.files),
            "dependencies": list(self.dependencies),
            "acceptanceCriteria": list(self.acceptance_criteria),
            "phase": self.phase,
            "complexity": self.complexity,
        }
        if self.status is not None:
            data["status"] = self.status
        for attribute, key in _OPTIONAL_FIELDS.items():
            value = getattr(self, attribute)
            if value is not None:
                data[key] = value
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from a persisted record."""
        if not isinstance(data, dict):
            raise ValueError(f"Task record must be an object, got {type(data).__name__}")
        task_id = data.get("id")
        if task_id is None or not str(task_id).strip():
            raise ValueError("Task record is missing an 'id'")

        return cls(
            id=str(task_id),
            title=data.get("title") or "",
            description=data.get("description") or "",
            files=list(data.get("files") or []),
            dependencies=[str(dep) for dep in data.get("dependencies") or []],
            acceptance_criteria=list(data.get("acceptanceCriteria") or []),
            phase=data.get("phase"),
            complexity=data.get("complexity"),
            status=data.get("status"),
            technical_notes=data.get("technicalNotes"),
            started_at=data.get("startedAt"),
            completed_at=data.get("completedAt"),
            failed_at=data.get("failedAt"),
            previewed_at=data.get("previewedAt"),
            result=data.get("result"),
            artifacts=data.get("artifacts"),
            error=data.get("error"),
            preview=data.get("preview"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    @property
    def display_status(self) -> str:
        return self.status or TaskStatus.PENDING

    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def clear_failure(self) -> None:
        """Drop the fields left behind by an earlier failed run."""
        self.error = None
        self.failed_at = None


@dataclass(slots=True, frozen=True)
class ChangedFile:
    """A file the generator reported as added or updated."""

    ACTION_ADD = "Add"
    ACTION_UPDATE = "Update"

    action: str
    path: str

    def to_dict(self) -> Dict[str, str]:
        return {"action": self.action, "path": self.path}


@dataclass(slots=True)
class StatusReport:
    """Aggregate task counts over a whole task document."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    failed: int = 0
    pending: int = 0

    def percentage(self, bucket: str) -> int:
        """Share of ``bucket`` in the total, rounded half up; 0 when empty."""
        if self.total == 0:
            return 0
        count = getattr(self, bucket)
        return int(count * 100 / self.total + 0.5)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        buckets = ("completed", "in_progress", "failed", "pending")
        return {
            "total": self.total,
            **{name: getattr(self, name) for name in buckets},
            "percentages": {name: self.percentage(name) for name in buckets},
        }


@dataclass(slots=True)
class PhaseProgress:
    """Completion ratio of a single phase."""

    phase: Optional[str]
    completed: int = 0
    total: int = 0

    def describe(self) -> str:
        return f"{self.phase}: {self.completed}/{self.total} completed"

    def to_dict(self) -> Dict[str, Any]:
        return {"phase": self.phase, "completed": self.completed, "total": self.total}
