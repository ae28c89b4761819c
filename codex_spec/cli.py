"""Command line interface: ``codex-spec``."""

from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List, Optional

from .codex_logging import setup_logging
from .config import Settings
from .workflow import WorkflowManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codex-spec",
        description="Execute spec-driven implementation tasks with the Codex CLI",
    )
    parser.add_argument("--root", help="Project root (defaults to the nearest directory with .codex-specs)")
    parser.add_argument("--spec", help="Spec name under .codex-specs (defaults to 'current')")
    parser.add_argument("--log-level", help="Logging level (overrides CODEX_SPEC_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List tasks")

    execute = subparsers.add_parser("execute", help="Execute a specific task with Codex")
    execute.add_argument("task_id")
    execute.add_argument("--read-only", action="store_true", help="Preview without marking the task completed")
    execute.add_argument("--force", action="store_true", help="Ignore incomplete dependencies")

    phase = subparsers.add_parser("execute-phase", help="Execute all pending tasks in a phase")
    phase.add_argument("phase")
    phase.add_argument("--read-only", action="store_true", help="Preview without marking tasks completed")

    subparsers.add_parser("status", help="Show task status counts")
    subparsers.add_parser("plan-summary", help="Show completion per phase")
    return parser


def _print_failure(response: Dict[str, Any]) -> None:
    print(f"❌ {response['error']}")
    if response.get("suggestion"):
        print(f"💡 {response['suggestion']}")


def _print_warning(response: Dict[str, Any]) -> None:
    if response.get("warning"):
        print(f"⚠️  {response['warning']}")
        print(f"💡 {response['suggestion']}")


def _print_outcome(response: Dict[str, Any]) -> None:
    if response.get("error"):
        _print_failure(response)
        return
    print(f"\n✅ {response['message']}")
    if response.get("summary"):
        print("📝 Implementation summary:")
        for line in response["summary"]:
            print(f"  {line}")
    for changed in response.get("changed_files", []):
        print(f"  {changed['action']}: {changed['path']}")
    if response.get("log_path"):
        print(f"📁 Log: {response['log_path']}")


def _stream(chunk: str) -> None:
    sys.stdout.write(chunk)
    sys.stdout.flush()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
    except ValueError as e:
        _print_failure({"error": f"Invalid configuration: {e}", "suggestion": "Fix the environment variable and retry"})
        return 0
    setup_logging(args.log_level or settings.log_level, settings.log_file)

    manager = WorkflowManager(root=args.root, spec_name=args.spec, settings=settings)

    if args.command == "list":
        response = manager.list_tasks()
        if response.get("error"):
            _print_failure(response)
        else:
            print("🧩 Tasks")
            print(response["table"])
            print("\nRun a task: codex-spec execute <task-id>")
            print("Run all tasks in a phase: codex-spec execute-phase <phase-name>")
            _print_warning(response)

    elif args.command == "execute":
        print(f"🚀 Executing task: {args.task_id}")
        response = manager.execute_task(
            args.task_id, read_only=args.read_only, force=args.force, on_progress=_stream
        )
        _print_outcome(response)

    elif args.command == "execute-phase":
        response = manager.execute_phase(args.phase, read_only=args.read_only, on_progress=_stream)
        if response.get("error"):
            _print_failure(response)
        elif not response["outcomes"]:
            print(response["message"])
        else:
            for outcome in response["outcomes"]:
                marker = "✅" if outcome["outcome"] in ("completed", "previewed") else "❌"
                print(f"{marker} {outcome['task_id']}: {outcome['message']}")
            print(response["message"])

    else:
        response = manager.check_status() if args.command == "status" else manager.plan_summary()
        if response.get("error"):
            _print_failure(response)
        else:
            print(response["text"])
            _print_warning(response)

    return 0


if __name__ == "__main__":
    sys.exit(main())
