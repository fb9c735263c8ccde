"""
Tests for TaskFlow core: schema, store, state, renderer.
"""
import sqlite3
import tempfile
import pytest
from pathlib import Path

from pkg.taskflow.schema import (
    JobRecord,
    JobStatus,
    ViewMode,
    format_due,
    make_job_id,
    parse_tags,
)
from pkg.taskflow.store import (
    JobStore,
    StorageReadError,
    StorageUnavailable,
)
from pkg.taskflow.state import AppState
from pkg.taskflow.render import (
    EMPTY_MESSAGE,
    filter_jobs,
    render,
    render_dashboard,
    render_kanban,
    render_list,
    summarize,
)


def _job(job_id, title="Job", status="todo", due="2024-06-01", tags=None, priority="medium"):
    return JobRecord(id=job_id, title=title, status=status, priority=priority,
                     due_date=due, tags=tags or [])


class ListStore:
    """Minimal stand-in exposing get_all() over a fixed list."""

    def __init__(self, jobs):
        self.jobs = jobs

    def get_all(self):
        return list(self.jobs)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Schema Tests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_job_record_defaults():
    """New records start in todo with medium priority"""
    job = JobRecord(id="job-1", title="Write tests")
    assert job.status == "todo"
    assert job.priority == "medium"
    assert job.tags == []
    assert job.updated_at == ""


def test_make_job_id_unique():
    ids = {make_job_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(i.startswith("job-") for i in ids)


def test_parse_tags_trims_and_drops_empties():
    assert parse_tags(" writing, docs ,, ") == ["writing", "docs"]
    assert parse_tags("") == []


def test_format_due():
    assert format_due("2024-06-01") == "Jun 1"
    assert format_due("2024-12-25") == "Dec 25"
    assert format_due("someday") == "someday"


def test_from_dict_accepts_legacy_keys():
    """Records exported by the browser app use camelCase keys"""
    job = JobRecord.from_dict({
        "id": "abc",
        "title": "Legacy",
        "desc": "old description",
        "status": "review",
        "priority": "low",
        "dueDate": "2024-02-03",
        "tags": ["a"],
        "updatedAt": "2024-02-01T00:00:00Z",
    })
    assert job.description == "old description"
    assert job.due_date == "2024-02-03"
    assert job.updated_at == "2024-02-01T00:00:00Z"


def test_view_mode_from_str():
    assert ViewMode.from_str("Kanban") == ViewMode.KANBAN
    with pytest.raises(ValueError):
        ViewMode.from_str("calendar")


def test_job_status_values_in_board_order():
    assert JobStatus.values() == ["todo", "in-progress", "review", "done"]
    assert not JobStatus.is_known("archived")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Store Tests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_store_upsert_and_get_all():
    """Upsert followed by get_all returns exactly the saved values"""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp:
        db_path = tmp.name

    try:
        store = JobStore(db_path)
        store.initialize()
        job = _job("job-1", title="Draft spec", tags=["writing", "docs"])
        job.description = "first pass"
        job.touch()

        store.upsert(job)
        jobs = store.get_all()

        assert len(jobs) == 1
        assert jobs[0].to_dict() == job.to_dict()

    finally:
        Path(db_path).unlink(missing_ok=True)


def test_store_upsert_is_idempotent(store):
    job = _job("job-1")
    store.upsert(job)
    store.upsert(job)
    assert [j.to_dict() for j in store.get_all()] == [job.to_dict()]


def test_store_upsert_replaces_whole_record(store):
    store.upsert(_job("job-1", title="Original", tags=["a", "b"]))
    store.upsert(_job("job-1", title="Updated", status="done"))

    jobs = store.get_all()
    assert len(jobs) == 1
    assert jobs[0].title == "Updated"
    assert jobs[0].status == "done"
    assert jobs[0].tags == []


def test_store_get(store):
    store.upsert(_job("job-1", title="Find me"))
    assert store.get("job-1").title == "Find me"
    assert store.get("missing") is None


def test_store_delete(store):
    store.upsert(_job("job-1"))
    store.upsert(_job("job-2"))

    store.delete("job-1")
    assert {j.id for j in store.get_all()} == {"job-2"}


def test_store_delete_missing_is_noop(store):
    store.upsert(_job("job-1"))
    store.delete("never-existed")
    assert [j.id for j in store.get_all()] == ["job-1"]


def test_store_keeps_unknown_status(store):
    store.upsert(_job("job-1", status="archived"))
    assert store.get("job-1").status == "archived"


def test_store_survives_reopen(tmp_path):
    """Writes are durable across store instances"""
    db_path = str(tmp_path / "taskflow.db")
    first = JobStore(db_path)
    first.initialize()
    first.upsert(_job("job-1", title="Persisted"))

    second = JobStore(db_path)
    second.initialize()
    assert second.get("job-1").title == "Persisted"


def test_store_creates_status_and_due_date_indexes(store):
    with sqlite3.connect(store.db_path) as conn:
        names = {r[0] for r in conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = 'jobs'"
        )}
    assert {"idx_jobs_status", "idx_jobs_due_date"} <= names


def test_store_unavailable_when_path_is_not_a_directory(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = JobStore(str(blocker / "nested" / "taskflow.db"))
    with pytest.raises(StorageUnavailable):
        store.initialize()


def test_store_requires_initialize(tmp_path):
    store = JobStore(str(tmp_path / "taskflow.db"))
    with pytest.raises(StorageUnavailable):
        store.get_all()


def test_store_read_error(store):
    with sqlite3.connect(store.db_path) as conn:
        conn.execute("DROP TABLE jobs")
        conn.commit()
    with pytest.raises(StorageReadError):
        store.get_all()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# State Tests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_reload_sorts_by_due_date():
    state = AppState()
    state.reload(ListStore([
        _job("late", due="2024-09-01"),
        _job("bad", due="not a date"),
        _job("early", due="2024-01-15"),
        _job("mid", due="2024-06-01"),
    ]))
    assert [j.id for j in state.jobs] == ["early", "mid", "late", "bad"]


def test_reload_replaces_snapshot():
    state = AppState()
    state.reload(ListStore([_job("a"), _job("b")]))
    state.reload(ListStore([_job("c")]))
    assert [j.id for j in state.jobs] == ["c"]


def test_jobs_snapshot_is_read_only():
    state = AppState()
    state.reload(ListStore([_job("a")]))
    assert isinstance(state.jobs, tuple)
    with pytest.raises(AttributeError):
        state.jobs = ()


def test_set_filter_lowercases():
    state = AppState()
    state.set_filter("WrItInG")
    assert state.search_filter == "writing"


def test_drag_transitions():
    state = AppState()
    state.begin_drag("job-1")
    state.hover("done")
    assert (state.dragging, state.drop_target) == ("job-1", "done")
    state.end_drag()
    assert (state.dragging, state.drop_target) == (None, None)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Renderer Tests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


JOBS = [
    _job("1", title="Draft spec", tags=["writing"]),
    _job("2", title="Fix login bug", status="in-progress", tags=["Backend"]),
    _job("3", title="Review PR", status="review", tags=["code"]),
    _job("4", title="Ship release", status="done", tags=["ops", "Writing-notes"]),
]


class TestFilter:

    def test_empty_query_keeps_everything(self):
        assert filter_jobs(JOBS, "") == JOBS

    def test_title_match_is_case_insensitive(self):
        assert [j.id for j in filter_jobs(JOBS, "LOGIN")] == ["2"]

    def test_tag_match(self):
        assert [j.id for j in filter_jobs(JOBS, "backend")] == ["2"]

    def test_title_or_any_tag(self):
        assert [j.id for j in filter_jobs(JOBS, "writing")] == ["1", "4"]

    def test_matches_definition(self):
        for q in ["", "r", "spec", "ops", "zzz", "e"]:
            expected = [
                j for j in JOBS
                if q == "" or q in j.title.lower() or any(q in t.lower() for t in j.tags)
            ]
            assert filter_jobs(JOBS, q) == expected

    def test_no_match(self):
        assert filter_jobs(JOBS, "nonexistent") == []


class TestDashboard:

    def test_shows_first_five(self):
        jobs = [_job(str(i), title=f"Job {i}") for i in range(8)]
        body = render_dashboard(jobs)
        assert [r["id"] for r in body["recent"]] == ["0", "1", "2", "3", "4"]
        assert body["empty"] is None

    def test_item_shape(self):
        item = render_dashboard([_job("1", title="Draft", priority="high")])["recent"][0]
        assert item["due"] == "Due 2024-06-01"
        assert item["badge"] == {"label": "todo", "style": "high"}

    def test_empty_state(self):
        body = render_dashboard([])
        assert body["recent"] == []
        assert body["empty"] == EMPTY_MESSAGE


class TestKanban:

    def test_every_known_job_in_exactly_one_column(self):
        body = render_kanban(JOBS)
        placed = [c["id"] for col in body["columns"] for c in col["cards"]]
        assert sorted(placed) == ["1", "2", "3", "4"]
        assert len(placed) == len(set(placed))

    def test_column_counts_match_buckets(self):
        body = render_kanban(JOBS + [_job("5")])
        for col in body["columns"]:
            assert col["count"] == len(col["cards"])
        counts = {col["status"]: col["count"] for col in body["columns"]}
        assert counts == {"todo": 2, "in-progress": 1, "review": 1, "done": 1}

    def test_fixed_column_order(self):
        body = render_kanban([])
        assert [c["status"] for c in body["columns"]] == ["todo", "in-progress", "review", "done"]
        assert all(c["count"] == 0 for c in body["columns"])

    def test_unknown_status_is_reported_not_placed(self, caplog):
        body = render_kanban([_job("1"), _job("x", status="archived")])
        placed = [c["id"] for col in body["columns"] for c in col["cards"]]
        assert placed == ["1"]
        assert body["unplaced"] == [{"id": "x", "title": "Job", "status": "archived"}]
        assert "unknown status" in caplog.text

    def test_card_shape(self):
        card = render_kanban([_job("1", tags=["writing"], priority="high")])["columns"][0]["cards"][0]
        assert card["priority"] == "high"
        assert card["tags"] == ["writing"]
        assert card["due"] == "Jun 1"


class TestList:

    def test_one_row_per_job_in_given_order(self):
        rows = render_list(JOBS)["rows"]
        assert [r["id"] for r in rows] == ["1", "2", "3", "4"]
        assert rows[1]["status_badge"] == "in-progress"
        assert rows[1]["priority_badge"] == "medium"


class TestSummary:

    def test_counts(self):
        assert summarize(JOBS) == {"total": 4, "active": 1, "completed": 1, "pending": 2}

    def test_stats_ignore_filter_and_view(self):
        state = AppState()
        state.reload(ListStore(JOBS))
        baseline = render(state)["stats"]
        for view in ViewMode:
            state.set_view(view)
            state.set_filter("nonexistent")
            assert render(state)["stats"] == baseline

    def test_render_header_and_view(self):
        state = AppState(view=ViewMode.KANBAN)
        out = render(state)
        assert out["view"] == "kanban"
        assert out["header"] == "Kanban"
        assert "columns" in out["body"]
