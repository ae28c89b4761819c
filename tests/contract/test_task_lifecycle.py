"""
Contract tests for the task lifecycle.

These tests pin the observable guarantees of task execution: what a
blocked, successful, previewed or failed run leaves behind in tasks.json,
and how changed files are inferred from a transcript.
"""

import pytest

from codex_spec.generator import GeneratorError
from codex_spec.models import ChangedFile
from codex_spec.orchestrator import OutcomeKind, TaskExecutor
from codex_spec.output import extract_changed_files, summarize_tail

from conftest import FakeGenerator, make_task, read_tasks


@pytest.fixture
def executor_for(spec_dir, clock):
    def _make(store, generator):
        return TaskExecutor(store, generator, spec_dir / "logs", clock=clock)

    return _make


class TestTaskLifecycleContract:

    @pytest.mark.parametrize("dep_status", ["pending", "in-progress", "failed", None])
    def test_blocked_execution_changes_nothing(self, write_tasks, executor_for, dep_status):
        store = write_tasks([
            make_task("d1", status=dep_status),
            make_task("d2", status="completed"),
            make_task("t", dependencies=["d1", "d2"]),
        ])
        before = store.path.read_bytes()

        outcome = executor_for(store, FakeGenerator()).execute("t")

        assert outcome.kind == OutcomeKind.BLOCKED
        assert outcome.unmet_dependencies == ["d1"]
        assert store.path.read_bytes() == before

    def test_successful_run_contract(self, write_tasks, executor_for):
        store = write_tasks([make_task("t", status="failed", error="e", failedAt="f")])

        outcome = executor_for(store, FakeGenerator()).execute("t")

        record = read_tasks(store.path)["t"]
        assert record["status"] == "completed"
        assert record["completedAt"]
        assert "error" not in record and "failedAt" not in record
        assert record["artifacts"]["log"] == str(outcome.log_path)

    def test_read_only_run_contract(self, write_tasks, executor_for):
        store = write_tasks([make_task("t", status="failed", error="e", failedAt="f")])

        executor_for(store, FakeGenerator()).execute("t", read_only=True)

        record = read_tasks(store.path)["t"]
        assert record["status"] == "pending"
        assert record["previewedAt"]
        for key in ("completedAt", "error", "failedAt"):
            assert key not in record

    def test_failed_run_contract(self, write_tasks, executor_for):
        store = write_tasks([make_task("t", artifacts={"log": "a.log"}, preview={"log": "p.log"})])

        executor_for(store, FakeGenerator(default=GeneratorError("exit 1"))).execute("t")

        record = read_tasks(store.path)["t"]
        assert record["status"] == "failed"
        assert record["failedAt"]
        assert record["error"] == "exit 1"
        assert record["artifacts"] == {"log": "a.log"}
        assert record["preview"] == {"log": "p.log"}


class TestTranscriptContract:

    def test_reference_extraction(self):
        assert extract_changed_files("*** Add File: src/a.js\nsome text\nFile: src/b.js\n") == [
            ChangedFile("Add", "src/a.js"),
            ChangedFile("Update", "src/b.js"),
        ]

    def test_add_then_bare_mention_is_one_record(self):
        assert extract_changed_files("*** Add File: a.js\nmore\nFile: a.js\n") == [ChangedFile("Add", "a.js")]

    def test_merge_is_order_independent(self):
        lines = ["*** Update File: a.js", "File: b.js", "*** Add File: a.js", "File: a.js"]
        forward = set(extract_changed_files("\n".join(lines)))
        backward = set(extract_changed_files("\n".join(reversed(lines))))

        assert forward == backward == {ChangedFile("Add", "a.js"), ChangedFile("Update", "b.js")}

    @pytest.mark.parametrize("noise_count", [0, 5, 40])
    def test_summary_keeps_meaningful_lines(self, noise_count):
        text = "\n".join(["alpha", *["+added"] * noise_count, "beta", "gamma"])

        assert summarize_tail(text) == ["alpha", "beta", "gamma"]

    def test_summary_falls_back_for_diff_only_output(self):
        text = "\n".join(["+a", "-b", "ok", "+c"])

        assert summarize_tail(text) == ["+a", "-b", "ok", "+c"]
