"""Sequential execution of every open task in a phase."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .codex_logging import log_operation
from .orchestrator import ExecutionOutcome, OutcomeKind, TaskExecutor
from .store import InvalidTaskDocument, TaskDocumentNotFound, TaskStore

logger = logging.getLogger("codex_spec.phase_runner")


@dataclass(slots=True)
class PhaseRunResult:
    phase: str
    outcomes: List[ExecutionOutcome] = field(default_factory=list)
    message: str = ""
    error: Optional[str] = None

    def _count(self, kind: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind == kind)

    @property
    def completed(self) -> int:
        return self._count(OutcomeKind.COMPLETED) + self._count(OutcomeKind.PREVIEWED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeKind.FAILED)

    @property
    def blocked(self) -> int:
        return self._count(OutcomeKind.BLOCKED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase,
            "message": self.message,
            "error": self.error,
            "completed": self.completed,
            "failed": self.failed,
            "blocked": self.blocked,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class PhaseRunner:
    """Run the non-completed tasks of one phase in storage order."""

    def __init__(self, executor: TaskExecutor, store: TaskStore):
        self.executor = executor
        self.store = store

    def select(self, phase: str) -> List[str]:
        tasks = self.store.load()
        return [task.id for task in tasks if task.phase == phase and not task.is_completed()]

    def run(self, phase: str, read_only: bool = False) -> PhaseRunResult:
        try:
            task_ids = self.select(phase)
        except (TaskDocumentNotFound, InvalidTaskDocument) as e:
            return PhaseRunResult(phase, message=str(e), error=str(e))

        if not task_ids:
            return PhaseRunResult(phase, message=f"No pending tasks found for phase: {phase}")

        result = PhaseRunResult(phase)
        with log_operation("execute_phase", phase=phase, task_count=len(task_ids), read_only=read_only):
            for task_id in task_ids:
                outcome = self.executor.execute(task_id, read_only=read_only)
                logger.info(f"Phase {phase}: task {task_id} -> {outcome.kind}")
                result.outcomes.append(outcome)

        result.message = (
            f'Phase "{phase}" finished: {result.completed} succeeded, '
            f"{result.failed} failed, {result.blocked} blocked"
        )
        return result
