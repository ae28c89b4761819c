"""MCP server exposing codex-spec task execution tools."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from codex_spec.codex_logging import setup_logging
from codex_spec.config import Settings
from codex_spec.workflow import WorkflowManager

mcp = FastMCP("codex-spec")


SERVER_ROOT = Path(__file__).resolve().parent


def _candidate_bases() -> List[Path]:
    cwd = Path.cwd().resolve()
    bases: List[Path] = [cwd, *cwd.parents]
    if SERVER_ROOT not in bases:
        bases.append(SERVER_ROOT)
    return bases


def _resolve_root(root: Optional[str], settings: Settings) -> Path:
    if root:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Provided root '{root}' does not exist.")
        return resolved

    env_root = os.getenv("CODEX_SPEC_PROJECT_ROOT")
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.exists():
            raise ValueError(
                f"Environment variable CODEX_SPEC_PROJECT_ROOT points to '{env_root}', which does not exist."
            )
        return env_path

    for base in _candidate_bases():
        if (base / settings.storage_dir).is_dir():
            return base

    raise ValueError(
        "Unable to determine project root automatically. Provide the 'root' argument when calling the tool "
        "or set the CODEX_SPEC_PROJECT_ROOT environment variable."
    )


def _manager(root: Optional[str], spec: Optional[str]) -> WorkflowManager:
    settings = Settings.from_env()
    return WorkflowManager(root=_resolve_root(root, settings), spec_name=spec, settings=settings)


@mcp.tool()
def list_tasks(root: Optional[str] = None, spec: Optional[str] = None) -> Dict[str, Any]:
    """List every task of the spec with its phase and status."""

    return _manager(root, spec).list_tasks()


@mcp.tool()
def execute_task(
    task_id: str,
    read_only: bool = False,
    force: bool = False,
    root: Optional[str] = None,
    spec: Optional[str] = None,
) -> Dict[str, Any]:
    """Execute one task with the Codex CLI.

    read_only runs in a read-only sandbox and leaves the task pending with a
    preview; force ignores incomplete dependencies."""

    return _manager(root, spec).execute_task(task_id, read_only=read_only, force=force)


@mcp.tool()
def execute_phase(
    phase: str,
    read_only: bool = False,
    root: Optional[str] = None,
    spec: Optional[str] = None,
) -> Dict[str, Any]:
    """Execute every task of a phase that is not completed yet, in order."""

    return _manager(root, spec).execute_phase(phase, read_only=read_only)


@mcp.tool()
def task_status(root: Optional[str] = None, spec: Optional[str] = None) -> Dict[str, Any]:
    """Report completed / in-progress / failed / pending counts with percentages."""

    return _manager(root, spec).check_status()


@mcp.tool()
def plan_summary(root: Optional[str] = None, spec: Optional[str] = None) -> Dict[str, Any]:
    """Report completed/total tasks for each phase."""

    return _manager(root, spec).plan_summary()


@mcp.resource("codex-spec://tasks")
def resource_tasks() -> str:
    """Resource view of the current task table."""

    try:
        manager = _manager(None, None)
    except ValueError:
        return "No project root detected. Launch tools with a 'root' argument or set CODEX_SPEC_PROJECT_ROOT."

    response = manager.list_tasks()
    if response.get("error"):
        return response["message"]
    return "Tasks\n" + response["table"]


if __name__ == "__main__":
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    mcp.run(transport="stdio")
