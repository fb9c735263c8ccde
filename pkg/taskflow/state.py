"""
Application state: the in-memory snapshot the renderer draws from.

The job collection is only ever replaced wholesale by reload(), so the
snapshot always matches what the store last returned.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

from .schema import JobRecord, ViewMode, parse_due
from .store import JobStore


@dataclass
class FormBuffer:
    """Transient create/edit form contents."""
    heading: str
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def editing(self) -> bool:
        return bool(self.fields.get("id"))

    def to_dict(self) -> Dict[str, object]:
        return {"heading": self.heading, "editing": self.editing, "fields": dict(self.fields)}


def _due_sort_key(job: JobRecord) -> Tuple[int, date]:
    # Unparseable dates go after every valid one
    d = parse_due(job.due_date)
    return (0, d) if d is not None else (1, date.max)


class AppState:
    """Explicit state container owned by the controller."""

    def __init__(self, view: ViewMode = ViewMode.DASHBOARD):
        self._jobs: Tuple[JobRecord, ...] = ()
        self.view: ViewMode = view
        self.search_filter: str = ""
        self.form: Optional[FormBuffer] = None
        self.dragging: Optional[str] = None
        self.drop_target: Optional[str] = None

    @property
    def jobs(self) -> Tuple[JobRecord, ...]:
        return self._jobs

    def find(self, job_id: str) -> Optional[JobRecord]:
        for job in self._jobs:
            if job.id == job_id:
                return job
        return None

    # ── transitions ──

    def reload(self, store: JobStore) -> None:
        """Replace the snapshot with the store's contents, sorted by due date."""
        jobs = store.get_all()
        jobs.sort(key=_due_sort_key)
        self._jobs = tuple(jobs)

    def set_view(self, view: ViewMode) -> None:
        self.view = view

    def set_filter(self, text: str) -> None:
        self.search_filter = (text or "").lower()

    def open_form(self, buffer: FormBuffer) -> None:
        self.form = buffer

    def close_form(self) -> None:
        self.form = None

    def begin_drag(self, job_id: str) -> None:
        self.dragging = job_id

    def hover(self, status: Optional[str]) -> None:
        self.drop_target = status

    def end_drag(self) -> None:
        self.dragging = None
        self.drop_target = None
