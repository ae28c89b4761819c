"""Unit tests for status reporting."""

from codex_spec.models import Task
from codex_spec.reporter import StatusReporter, render_plan_summary, render_status, render_task_table

from conftest import make_task


def test_check_status_counts(write_tasks):
    store = write_tasks([
        make_task("a", status="completed"),
        make_task("b", status="in-progress"),
        make_task("c", status="failed"),
        make_task("d", status="pending"),
        make_task("e", status=None),
        make_task("f", status="blocked"),
    ])

    report = StatusReporter(store).check_status()

    assert (report.total, report.completed, report.in_progress, report.failed, report.pending) == (6, 1, 1, 1, 3)
    assert report.percentage("pending") == 50
    assert report.percentage("completed") == 17


def test_empty_document(write_tasks):
    report = StatusReporter(write_tasks([])).check_status()

    assert report.total == 0
    assert report.percentage("completed") == 0


def test_plan_summary_first_seen_order(write_tasks):
    store = write_tasks([
        make_task("a", phase="Core", status="completed"),
        make_task("b", phase="Foundation", status="completed"),
        make_task("c", phase="Core"),
    ])

    progress = StatusReporter(store).plan_summary()

    assert [p.describe() for p in progress] == ["Core: 1/2 completed", "Foundation: 1/1 completed"]


def test_reporting_is_read_only(write_tasks):
    store = write_tasks([make_task("a")])
    before = store.path.read_text(encoding="utf-8")

    reporter = StatusReporter(store)
    reporter.check_status()
    reporter.plan_summary()

    assert store.path.read_text(encoding="utf-8") == before


def test_render_status(write_tasks):
    store = write_tasks([make_task("a", status="completed"), make_task("b")])

    text = render_status(StatusReporter(store).check_status())

    assert "Total: 2" in text
    assert "Completed: 1 (50%)" in text
    assert "Pending: 1 (50%)" in text


def test_render_plan_summary(write_tasks):
    store = write_tasks([make_task("a", status="completed")])

    assert render_plan_summary(StatusReporter(store).plan_summary()).splitlines()[1] == "  Foundation: 1/1 completed"


def test_task_table_truncates_titles():
    task = Task(id="t1", title="x" * 50, phase="Core", status=None)

    row = render_task_table([task]).splitlines()[2]

    assert "x" * 39 + "…" in row
    assert row.endswith("pending")


def test_status_on_a_cyclic_document(write_tasks):
    store = write_tasks([
        make_task("t1", dependencies=["t2"]),
        make_task("t2", dependencies=["t1"]),
        make_task("t3", status="completed"),
    ])
    reporter = StatusReporter(store)

    report = reporter.check_status()

    assert (report.total, report.completed, report.pending) == (3, 1, 2)
    assert reporter.dependency_cycle() == ["t1", "t2", "t1"]


def test_no_cycle_reported_for_acyclic_document(write_tasks):
    store = write_tasks([make_task("a"), make_task("b", dependencies=["a"])])

    assert StatusReporter(store).dependency_cycle() is None
