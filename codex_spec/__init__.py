"""codex-spec: spec-driven task execution with the Codex CLI."""

from .models import ChangedFile, PhaseProgress, StatusReport, Task, TaskStatus
from .orchestrator import ExecutionOutcome, OutcomeKind, TaskExecutor
from .phase_runner import PhaseRunner, PhaseRunResult
from .reporter import StatusReporter
from .store import TaskStore
from .workflow import WorkflowManager
from .workspace import Workspace

__all__ = [
    "ChangedFile",
    "ExecutionOutcome",
    "OutcomeKind",
    "PhaseProgress",
    "PhaseRunResult",
    "PhaseRunner",
    "StatusReport",
    "StatusReporter",
    "Task",
    "TaskExecutor",
    "TaskStatus",
    "TaskStore",
    "WorkflowManager",
    "Workspace",
]
