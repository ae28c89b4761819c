"""Shared fixtures for codex-spec tests."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from codex_spec.generator import GeneratorError
from codex_spec.store import TaskStore


class FakeGenerator:
    """Generator double returning canned transcripts or raising errors.

    ``responses`` maps task ids (matched against the prompt) to a transcript
    string or an exception instance; ``default`` is used otherwise.
    """

    def __init__(self, default="Implemented the task.\nAll tests pass.\nDone.\n", responses=None):
        self.default = default
        self.responses = responses or {}
        self.calls = []

    def generate(self, prompt, options, cancel_token=None):
        self.calls.append({"prompt": prompt, "options": options, "cancel_token": cancel_token})
        response = self.default
        for task_id, canned in self.responses.items():
            if f"**Task ID:** {task_id}\n" in prompt:
                response = canned
                break
        if isinstance(response, Exception):
            raise response
        if options.on_progress:
            options.on_progress(response)
        return response


class FixedClock:
    """Clock advancing one second per call."""

    def __init__(self, start=datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


def make_task(task_id, phase="Foundation", status="pending", dependencies=None, **extra):
    record = {
        "id": task_id,
        "title": f"Task {task_id}",
        "description": f"Implement {task_id}",
        "files": [f"src/{task_id}.js"],
        "dependencies": dependencies or [],
        "acceptanceCriteria": [f"{task_id} works"],
        "phase": phase,
        "complexity": "small",
    }
    if status is not None:
        record["status"] = status
    record.update(extra)
    return record


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def failing_generator():
    return FakeGenerator(default=GeneratorError("Codex CLI failed (exit code 2): boom", exit_code=2, stderr="boom"))


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def spec_dir(tmp_path):
    path = tmp_path / ".codex-specs" / "current"
    path.mkdir(parents=True)
    (path / "plan.md").write_text("# Plan\n\nBuild the thing.\n", encoding="utf-8")
    return path


@pytest.fixture
def write_tasks(spec_dir):
    def _write(records):
        path = spec_dir / "tasks.json"
        path.write_text(json.dumps(records, indent=2), encoding="utf-8")
        return TaskStore(path)

    return _write


def read_tasks(path: Path):
    return {record["id"]: record for record in json.loads(Path(path).read_text(encoding="utf-8"))}


@pytest.fixture(autouse=True)
def _restore_package_logger():
    logger = logging.getLogger("codex_spec")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
