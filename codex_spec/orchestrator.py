"""Execution of a single task through the generator.

State machine::

    pending | failed --(gate ok or force)--> in-progress
    in-progress --(transcript)--> completed
    in-progress --(transcript, read-only)--> pending + preview
    in-progress --(generator error)--> failed

Validation failures (missing document, unknown task, open dependencies)
leave the document untouched. A task caught in a dependency cycle is
blocked like any other; ``force`` is the way out. Only generator failures are persisted as a
task failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .codex_logging import log_error_with_context, log_performance, log_task_transition
from .execution_log import write_execution_log
from .gate import satisfied_dependencies, unmet_dependencies
from .generator import CancellationToken, GenerationOptions, Generator, GeneratorError
from .models import ChangedFile, Task, TaskStatus, utc_timestamp
from .output import DEFAULT_SUMMARY_LINES, TranscriptDigest, digest_transcript
from .prompts import build_execution_prompt
from .store import (
    InvalidTaskDocument,
    TaskDocumentNotFound,
    TaskNotFound,
    TaskStore,
    dependency_cycle_through,
    describe_cycle,
    find_by_id,
)

logger = logging.getLogger("codex_spec.orchestrator")


class OutcomeKind:
    COMPLETED = "completed"
    PREVIEWED = "previewed"
    FAILED = "failed"
    BLOCKED = "blocked"
    MISSING_STORE = "missing-store"
    MISSING_TASK = "missing-task"
    INVALID_STORE = "invalid-store"


@dataclass(slots=True)
class ExecutionOutcome:
    """What happened to one execution request."""

    task_id: str
    kind: str
    message: str
    unmet_dependencies: List[str] = field(default_factory=list)
    dependency_cycle: List[str] = field(default_factory=list)
    log_path: Optional[Path] = None
    summary: List[str] = field(default_factory=list)
    changed_files: List[ChangedFile] = field(default_factory=list)
    error: Optional[str] = None
    task: Optional[Task] = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.COMPLETED, OutcomeKind.PREVIEWED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "outcome": self.kind,
            "message": self.message,
            "unmet_dependencies": list(self.unmet_dependencies),
            "dependency_cycle": list(self.dependency_cycle),
            "log_path": str(self.log_path) if self.log_path else None,
            "summary": list(self.summary),
            "changed_files": [f.to_dict() for f in self.changed_files],
            "error": self.error,
            "task": self.task.to_dict() if self.task else None,
        }


class TaskExecutor:
    """Run one task at a time against a generator, persisting every transition."""

    def __init__(
        self,
        store: TaskStore,
        generator: Generator,
        logs_dir: Path | str,
        plan: str = "",
        summary_lines: int = DEFAULT_SUMMARY_LINES,
        sandbox: str = "workspace-write",
        mode: str = "code",
        model: Optional[str] = None,
        on_progress: Optional[Callable[[str], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.generator = generator
        self.logs_dir = Path(logs_dir)
        self.plan = plan
        self.summary_lines = summary_lines
        self.sandbox = sandbox
        self.mode = mode
        self.model = model
        self.on_progress = on_progress
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _now(self) -> str:
        return utc_timestamp(self.clock())

    @log_performance("execute_task")
    def execute(
        self,
        task_id: str,
        read_only: bool = False,
        force: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExecutionOutcome:
        """Run ``task_id`` once; see the module docstring for the transitions."""
        try:
            tasks = self.store.load()
        except TaskDocumentNotFound as e:
            return ExecutionOutcome(task_id, OutcomeKind.MISSING_STORE, str(e))
        except InvalidTaskDocument as e:
            return ExecutionOutcome(task_id, OutcomeKind.INVALID_STORE, str(e), error=str(e))

        try:
            task = find_by_id(tasks, task_id)
        except TaskNotFound as e:
            return ExecutionOutcome(task_id, OutcomeKind.MISSING_TASK, str(e))

        unmet = unmet_dependencies(task, tasks)
        if unmet and not force:
            message = f"Incomplete dependencies: {', '.join(unmet)}"
            cycle = dependency_cycle_through(tasks, task_id) or []
            if cycle:
                message = f"{message} ({describe_cycle(cycle)})"
            logger.info(f"Task {task_id} blocked. {message}")
            return ExecutionOutcome(
                task_id,
                OutcomeKind.BLOCKED,
                message,
                unmet_dependencies=unmet,
                dependency_cycle=cycle,
                task=task,
            )

        previous_status = task.status
        task.status = TaskStatus.IN_PROGRESS
        task.started_at = self._now()
        self.store.save(tasks)
        log_task_transition(task_id, previous_status, TaskStatus.IN_PROGRESS, read_only=read_only, forced=bool(unmet))

        prompt = build_execution_prompt(
            task,
            self.plan,
            satisfied=satisfied_dependencies(task, tasks),
            outstanding=unmet,
        )
        options = GenerationOptions(
            mode=self.mode,
            sandbox="read-only" if read_only else self.sandbox,
            on_progress=self.on_progress,
            model=self.model,
        )

        try:
            transcript = self.generator.generate(prompt, options, cancel_token)
            log_path = write_execution_log(self.logs_dir, task_id, transcript, now=self.clock())
            digest = digest_transcript(transcript, self.summary_lines)
        except Exception as e:
            return self._fail(tasks, task, e)

        if read_only:
            return self._preview(tasks, task, log_path, digest)
        return self._complete(tasks, task, log_path, digest)

    def _complete(self, tasks: List[Task], task: Task, log_path: Path, digest: TranscriptDigest) -> ExecutionOutcome:
        task.status = TaskStatus.COMPLETED
        task.completed_at = self._now()
        task.artifacts = {
            "filesCreated": digest.files_created,
            "filesUpdated": digest.files_updated,
            "log": str(log_path),
        }
        task.result = {"log": str(log_path), "summary": digest.summary}
        task.clear_failure()
        self.store.save(tasks)
        log_task_transition(task.id, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, log=str(log_path))

        return ExecutionOutcome(
            task.id,
            OutcomeKind.COMPLETED,
            f"Task {task.id} completed successfully",
            log_path=log_path,
            summary=digest.summary,
            changed_files=digest.changed_files,
            task=task,
        )

    def _preview(self, tasks: List[Task], task: Task, log_path: Path, digest: TranscriptDigest) -> ExecutionOutcome:
        task.status = TaskStatus.PENDING
        task.previewed_at = self._now()
        task.completed_at = None
        task.preview = {"log": str(log_path), "summary": digest.summary}
        task.clear_failure()
        self.store.save(tasks)
        log_task_transition(task.id, TaskStatus.IN_PROGRESS, TaskStatus.PENDING, preview=True, log=str(log_path))

        return ExecutionOutcome(
            task.id,
            OutcomeKind.PREVIEWED,
            f"Preview of task {task.id} finished; task left pending",
            log_path=log_path,
            summary=digest.summary,
            changed_files=digest.changed_files,
            task=task,
        )

    def _fail(self, tasks: List[Task], task: Task, error: Exception) -> ExecutionOutcome:
        message = str(error) or type(error).__name__
        if not isinstance(error, GeneratorError):
            log_error_with_context(error, {"operation": "execute_task", "task_id": task.id})

        task.status = TaskStatus.FAILED
        task.error = message
        task.failed_at = self._now()
        self.store.save(tasks)
        log_task_transition(task.id, TaskStatus.IN_PROGRESS, TaskStatus.FAILED, error=message)

        return ExecutionOutcome(
            task.id,
            OutcomeKind.FAILED,
            f"Task execution failed: {message}",
            error=message,
            task=task,
        )
