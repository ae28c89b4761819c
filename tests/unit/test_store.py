"""Unit tests for the task document store."""

import json

import pytest

from codex_spec.models import Task
from codex_spec.store import (
    InvalidTaskDocument,
    TaskDocumentNotFound,
    TaskNotFound,
    TaskStore,
    dependency_cycle_through,
    describe_cycle,
    find_by_id,
    find_dependency_cycle,
)

from conftest import make_task


class TestLoad:

    def test_missing_document(self, tmp_path):
        store = TaskStore(tmp_path / "tasks.json")

        assert not store.exists()
        with pytest.raises(TaskDocumentNotFound):
            store.load()

    def test_load_preserves_order(self, write_tasks):
        store = write_tasks([make_task("b"), make_task("a"), make_task("c")])

        assert [task.id for task in store.load()] == ["b", "a", "c"]

    def test_invalid_json(self, spec_dir):
        (spec_dir / "tasks.json").write_text("[{", encoding="utf-8")

        with pytest.raises(InvalidTaskDocument, match="not valid JSON"):
            TaskStore(spec_dir / "tasks.json").load()

    def test_document_must_be_a_list(self, spec_dir):
        (spec_dir / "tasks.json").write_text('{"id": "t1"}', encoding="utf-8")

        with pytest.raises(InvalidTaskDocument, match="JSON array"):
            TaskStore(spec_dir / "tasks.json").load()

    def test_duplicate_ids_rejected(self, write_tasks):
        store = write_tasks([make_task("t1"), make_task("t1")])

        with pytest.raises(InvalidTaskDocument, match="Duplicate task id: t1"):
            store.load()

    def test_cyclic_document_still_loads(self, write_tasks):
        store = write_tasks([
            make_task("t1", dependencies=["t3"]),
            make_task("t2", dependencies=["t1"]),
            make_task("t3", dependencies=["t2"]),
        ])

        tasks = store.load()

        assert [task.id for task in tasks] == ["t1", "t2", "t3"]
        assert find_dependency_cycle(tasks) == ["t1", "t3", "t2", "t1"]


class TestSave:

    def test_save_replaces_whole_document(self, write_tasks):
        store = write_tasks([make_task("t1"), make_task("t2")])
        tasks = store.load()
        tasks[0].status = "completed"

        store.save(tasks[:1])

        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert [record["id"] for record in data] == ["t1"]
        assert data[0]["status"] == "completed"

    def test_save_leaves_no_temporary_files(self, write_tasks):
        store = write_tasks([make_task("t1")])

        store.save(store.load())

        assert sorted(p.name for p in store.path.parent.iterdir()) == ["plan.md", "tasks.json"]

    def test_save_creates_parent_directory(self, tmp_path):
        store = TaskStore(tmp_path / "nested" / "tasks.json")

        store.save([Task(id="t1")])

        assert store.load()[0].id == "t1"


class TestLookup:

    def test_find_by_id(self):
        tasks = [Task(id="a"), Task(id="b")]
        assert find_by_id(tasks, "b") is tasks[1]

    def test_find_by_id_missing(self):
        with pytest.raises(TaskNotFound, match="Task zzz not found"):
            find_by_id([Task(id="a")], "zzz")


class TestCycleDetection:

    def test_acyclic_graph(self):
        tasks = [
            Task(id="a"),
            Task(id="b", dependencies=["a"]),
            Task(id="c", dependencies=["a", "b"]),
        ]
        assert find_dependency_cycle(tasks) is None

    def test_self_dependency(self):
        assert find_dependency_cycle([Task(id="a", dependencies=["a"])]) == ["a", "a"]

    def test_unknown_dependencies_are_ignored(self):
        assert find_dependency_cycle([Task(id="a", dependencies=["ghost"])]) is None

    def test_describe_cycle(self):
        assert describe_cycle(["a", "b", "a"]) == "Dependency cycle detected: a -> b -> a"


class TestCycleThroughTask:

    def test_task_on_a_cycle(self):
        tasks = [
            Task(id="t1", dependencies=["t0", "t2"]),
            Task(id="t2", dependencies=["t1"]),
            Task(id="t0"),
        ]
        assert dependency_cycle_through(tasks, "t1") == ["t1", "t2", "t1"]
        assert dependency_cycle_through(tasks, "t2") == ["t2", "t1", "t2"]

    def test_task_downstream_of_a_cycle_is_not_on_it(self):
        tasks = [
            Task(id="a", dependencies=["b"]),
            Task(id="b", dependencies=["a"]),
            Task(id="c", dependencies=["a"]),
        ]
        assert dependency_cycle_through(tasks, "c") is None

    def test_unknown_task(self):
        assert dependency_cycle_through([Task(id="a")], "zzz") is None
