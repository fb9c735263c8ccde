"""
View renderer.

Pure functions from (jobs, search filter, active view) to a JSON-ready
view model. Summary statistics always come from the unfiltered collection.
"""
import logging
from typing import Any, Dict, Iterable, List, Sequence

from .schema import JobRecord, JobStatus, ViewMode, format_due

logger = logging.getLogger(__name__)

COLUMN_TITLES: Dict[str, str] = {
    "todo": "To Do",
    "in-progress": "In Progress",
    "review": "Review",
    "done": "Done",
}
EMPTY_MESSAGE = "No jobs found."
DASHBOARD_LIMIT = 5


def filter_jobs(jobs: Iterable[JobRecord], query: str) -> List[JobRecord]:
    """Keep jobs whose title or any tag contains the query (case-insensitive)."""
    q = (query or "").lower()
    if not q:
        return list(jobs)
    return [
        j for j in jobs
        if q in j.title.lower() or any(q in t.lower() for t in j.tags)
    ]


def summarize(jobs: Sequence[JobRecord]) -> Dict[str, int]:
    """Board statistics over the full collection."""
    return {
        "total": len(jobs),
        "active": sum(1 for j in jobs if j.status == "in-progress"),
        "completed": sum(1 for j in jobs if j.status == "done"),
        "pending": sum(1 for j in jobs if j.status in ("todo", "review")),
    }


def _card(job: JobRecord) -> Dict[str, Any]:
    return {
        "id": job.id,
        "title": job.title,
        "status": job.status,
        "priority": job.priority,
        "tags": list(job.tags),
        "due": format_due(job.due_date),
    }


def render_dashboard(jobs: Sequence[JobRecord], limit: int = DASHBOARD_LIMIT) -> Dict[str, Any]:
    if not jobs:
        return {"recent": [], "empty": EMPTY_MESSAGE}
    recent = [
        {
            "id": j.id,
            "title": j.title,
            "due": f"Due {j.due_date}",
            "badge": {"label": j.status, "style": j.priority},
        }
        for j in jobs[:limit]
    ]
    return {"recent": recent, "empty": None}


def render_kanban(jobs: Sequence[JobRecord]) -> Dict[str, Any]:
    """Bucket jobs into the four fixed columns.

    Jobs with an unrecognised status still exist in the store but have no
    column; they are returned under 'unplaced' so callers can surface them.
    """
    buckets: Dict[str, List[Dict[str, Any]]] = {s: [] for s in JobStatus.values()}
    unplaced: List[Dict[str, Any]] = []
    for job in jobs:
        if job.status in buckets:
            buckets[job.status].append(_card(job))
        else:
            unplaced.append({"id": job.id, "title": job.title, "status": job.status})

    if unplaced:
        logger.warning(
            f"{len(unplaced)} job(s) with unknown status left off the board: "
            + ", ".join(f"{u['id']}={u['status']!r}" for u in unplaced)
        )

    columns = [
        {
            "status": status,
            "title": COLUMN_TITLES[status],
            "count": len(cards),
            "cards": cards,
        }
        for status, cards in buckets.items()
    ]
    return {"columns": columns, "unplaced": unplaced}


def render_list(jobs: Sequence[JobRecord]) -> Dict[str, Any]:
    rows = [
        {
            "id": j.id,
            "title": j.title,
            "status_badge": j.status,
            "priority_badge": j.priority,
            "due_date": j.due_date,
        }
        for j in jobs
    ]
    return {"rows": rows}


def render(state, dashboard_limit: int = DASHBOARD_LIMIT) -> Dict[str, Any]:
    """Render the active view of an AppState."""
    visible = filter_jobs(state.jobs, state.search_filter)

    if state.view == ViewMode.DASHBOARD:
        body = render_dashboard(visible, dashboard_limit)
    elif state.view == ViewMode.KANBAN:
        body = render_kanban(visible)
    else:
        body = render_list(visible)

    return {
        "view": state.view.value,
        "header": state.view.value.capitalize(),
        "filter": state.search_filter,
        "stats": summarize(state.jobs),
        "body": body,
    }
