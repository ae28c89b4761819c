"""Operator-facing workflow for codex-spec.

This module wires the workspace, store, generator, executor and reporter
together and answers every request with a plain dictionary. Operator
mistakes (no tasks yet, unknown task, open dependencies) come back as
``error`` entries with a suggestion instead of exceptions.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .codex_logging import log_error_with_context, log_operation
from .config import Settings
from .generator import CancellationToken, CodexCLIGenerator, Generator
from .orchestrator import OutcomeKind, TaskExecutor
from .phase_runner import PhaseRunner
from .reporter import StatusReporter, render_plan_summary, render_status, render_task_table
from .store import InvalidTaskDocument, TaskDocumentNotFound, describe_cycle, find_dependency_cycle
from .workspace import Workspace, locate_project_root

logger = logging.getLogger("codex_spec.workflow")

NO_TASKS_SUGGESTION = 'Run "codex-spec plan" first to generate tasks.json'
CYCLE_SUGGESTION = "Break the cycle in tasks.json or run one of its tasks with the force override"


class WorkflowManager:
    """Entry point shared by the CLI and the MCP server."""

    def __init__(
        self,
        root: Optional[Path | str] = None,
        spec_name: Optional[str] = None,
        settings: Optional[Settings] = None,
        generator: Optional[Generator] = None,
    ):
        self.settings = settings or Settings.from_env()
        resolved_root = (
            root
            or self.settings.project_root
            or locate_project_root(storage_dir=self.settings.storage_dir)
            or Path.cwd()
        )
        self.workspace = Workspace(
            resolved_root,
            spec_name=spec_name or self.settings.spec_name,
            storage_dir=self.settings.storage_dir,
        )
        self.store = self.workspace.store()
        self.generator = generator or CodexCLIGenerator(
            command=self.settings.codex_command,
            cwd=self.workspace.root,
            timeout=self.settings.timeout,
        )
        self.reporter = StatusReporter(self.store)

    def _executor(self, on_progress: Optional[Callable[[str], None]] = None) -> TaskExecutor:
        return TaskExecutor(
            self.store,
            self.generator,
            self.workspace.logs_dir,
            plan=self.workspace.load_plan(),
            summary_lines=self.settings.summary_lines,
            sandbox=self.settings.sandbox,
            model=self.settings.model,
            on_progress=on_progress,
        )

    def _store_error(self, error: Exception) -> Dict[str, Any]:
        if isinstance(error, TaskDocumentNotFound):
            return {
                "error": "No tasks found",
                "tasks_path": str(self.store.path),
                "suggestion": NO_TASKS_SUGGESTION,
                "message": f"No tasks found at {self.store.path}. {NO_TASKS_SUGGESTION}.",
            }
        return {
            "error": str(error),
            "tasks_path": str(self.store.path),
            "suggestion": "Review and fix tasks.json manually, then retry",
            "message": f"Error: {error}",
        }

    def _with_cycle_warning(self, response: Dict[str, Any], cycle: Optional[List[str]]) -> Dict[str, Any]:
        if cycle:
            response["warning"] = describe_cycle(cycle)
            response["suggestion"] = CYCLE_SUGGESTION
        return response

    # ------------------------------------------------------------------
    # Listing and reporting
    # ------------------------------------------------------------------

    def list_tasks(self) -> Dict[str, Any]:
        try:
            tasks = self.store.load()
        except (TaskDocumentNotFound, InvalidTaskDocument) as e:
            return self._store_error(e)

        response = {
            "tasks": [task.to_dict() for task in tasks],
            "count": len(tasks),
            "table": render_task_table(tasks),
            "message": f"Found {len(tasks)} tasks",
        }
        return self._with_cycle_warning(response, find_dependency_cycle(tasks))

    def check_status(self) -> Dict[str, Any]:
        try:
            report = self.reporter.check_status()
            cycle = self.reporter.dependency_cycle()
        except (TaskDocumentNotFound, InvalidTaskDocument) as e:
            return self._store_error(e)
        response = {"status": report.to_dict(), "text": render_status(report), "message": "Status computed"}
        return self._with_cycle_warning(response, cycle)

    def plan_summary(self) -> Dict[str, Any]:
        try:
            progress = self.reporter.plan_summary()
            cycle = self.reporter.dependency_cycle()
        except (TaskDocumentNotFound, InvalidTaskDocument) as e:
            return self._store_error(e)
        response = {
            "phases": [item.to_dict() for item in progress],
            "text": render_plan_summary(progress),
            "message": f"{len(progress)} phases",
        }
        return self._with_cycle_warning(response, cycle)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_task(
        self,
        task_id: str,
        read_only: bool = False,
        force: bool = False,
        on_progress: Optional[Callable[[str], None]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """Execute one task and describe the outcome."""
        try:
            with log_operation("execute_task", task_id=task_id, read_only=read_only, force=force):
                outcome = self._executor(on_progress).execute(
                    task_id, read_only=read_only, force=force, cancel_token=cancel_token
                )
        except Exception as e:
            log_error_with_context(e, {"operation": "execute_task", "task_id": task_id})
            return {
                "task_id": task_id,
                "error": f"Failed to execute task: {e}",
                "suggestion": "Check that the spec directory is writable",
                "message": f"Error: {e}",
            }

        response = outcome.to_dict()
        if outcome.kind == OutcomeKind.MISSING_STORE:
            response.update(self._store_error(TaskDocumentNotFound(self.store.path)))
        elif outcome.kind == OutcomeKind.INVALID_STORE:
            response["suggestion"] = "Review and fix tasks.json manually, then retry"
        elif outcome.kind == OutcomeKind.MISSING_TASK:
            response["error"] = outcome.message
            response["suggestion"] = "Use list_tasks to see the available task ids"
        elif outcome.kind == OutcomeKind.BLOCKED:
            response["error"] = outcome.message
            if outcome.dependency_cycle:
                response["suggestion"] = CYCLE_SUGGESTION
            else:
                response["suggestion"] = "Complete dependencies first or use the force override"
        return response

    def execute_phase(
        self,
        phase: str,
        read_only: bool = False,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> Dict[str, Any]:
        """Execute every open task of ``phase`` in storage order."""
        runner = PhaseRunner(self._executor(on_progress), self.store)
        try:
            result = runner.run(phase, read_only=read_only)
        except Exception as e:
            log_error_with_context(e, {"operation": "execute_phase", "phase": phase})
            return {"phase": phase, "error": f"Failed to execute phase: {e}", "message": f"Error: {e}"}

        response = result.to_dict()
        if result.error and not self.store.exists():
            response.update(self._store_error(TaskDocumentNotFound(self.store.path)))
        return response
