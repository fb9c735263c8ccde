"""
Interaction controller.

UI events arrive as command objects. Controller.dispatch() looks the
handler up in a table keyed by command type, runs it, and returns an
Outcome carrying the fresh render.

Contract: every command that writes to the store is followed by a full
reload of AppState from the store before the render is produced.
"""
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Optional

from .render import DASHBOARD_LIMIT, render
from .schema import (
    JobPriority,
    JobRecord,
    JobStatus,
    ViewMode,
    make_job_id,
    parse_due,
    parse_tags,
)
from .state import AppState, FormBuffer
from .store import JobStore, StorageReadError, StorageWriteError

logger = logging.getLogger(__name__)

DELETE_PROMPT = "Delete this job?"


class FormValidationError(ValueError):
    """Raised when submitted form fields fail validation."""
    pass


class JobNotFound(KeyError):
    """Raised when a command names a job that is not loaded."""
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Commands
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class Navigate:
    view: str


@dataclass(frozen=True)
class OpenForm:
    job_id: Optional[str] = None


@dataclass(frozen=True)
class CloseForm:
    pass


@dataclass(frozen=True)
class SubmitForm:
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Delete:
    job_id: str
    confirmed: bool = False


@dataclass(frozen=True)
class DragStart:
    job_id: str


@dataclass(frozen=True)
class DragOver:
    status: str


@dataclass(frozen=True)
class DragLeave:
    pass


@dataclass(frozen=True)
class Drop:
    status: str
    job_id: Optional[str] = None


@dataclass(frozen=True)
class Search:
    query: str


@dataclass
class Outcome:
    """Result of one dispatched command."""
    view: Dict[str, Any]
    alert: Optional[str] = None
    form: Optional[Dict[str, Any]] = None
    prompt: Optional[str] = None    # confirmation the user still has to give

    def to_dict(self) -> Dict[str, Any]:
        return {"view": self.view, "alert": self.alert, "form": self.form,
                "prompt": self.prompt}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Form validation
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def validate_form(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and coerce raw form fields.

    Returns:
        dict with keys id, title, description, status, priority, due_date, tags.

    Raises:
        FormValidationError on the first invalid field.
    """
    title = str(fields.get("title") or "").strip()
    if not title:
        raise FormValidationError("Title is required.")

    due_date = str(fields.get("due_date") or "").strip()
    if not due_date:
        raise FormValidationError("Due date is required.")
    if parse_due(due_date) is None:
        raise FormValidationError(f"Due date must be YYYY-MM-DD, got {due_date!r}.")

    status = str(fields.get("status") or JobStatus.TODO.value).strip().lower()
    if not JobStatus.is_known(status):
        raise FormValidationError(
            f"Invalid status {status!r}. Allowed: {', '.join(JobStatus.values())}"
        )

    priority = str(fields.get("priority") or JobPriority.MEDIUM.value).strip().lower()
    if priority not in JobPriority.values():
        raise FormValidationError(
            f"Invalid priority {priority!r}. Allowed: {', '.join(JobPriority.values())}"
        )

    tags = fields.get("tags") or []
    if isinstance(tags, str):
        tags = parse_tags(tags)
    elif not isinstance(tags, (list, tuple)):
        raise FormValidationError("Tags must be a comma-separated string or a list.")
    else:
        tags = [str(t).strip() for t in tags if str(t).strip()]

    return {
        "id": str(fields.get("id") or "").strip(),
        "title": title,
        "description": str(fields.get("description") or ""),
        "status": status,
        "priority": priority,
        "due_date": due_date,
        "tags": tags,
    }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Controller
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class Controller:
    """Translates commands into state transitions and store writes."""

    def __init__(self, store: JobStore, state: Optional[AppState] = None,
                 dashboard_limit: int = DASHBOARD_LIMIT):
        self.store = store
        self.state = state or AppState()
        self.dashboard_limit = dashboard_limit

    def start(self) -> Outcome:
        """Open the store and load the first snapshot. StorageUnavailable propagates."""
        self.store.initialize()
        self.state.reload(self.store)
        logger.info(f"Loaded {len(self.state.jobs)} job(s)")
        return self.snapshot()

    def dispatch(self, command) -> Outcome:
        handler: Callable = self.HANDLERS.get(type(command))
        if handler is None:
            raise TypeError(f"No handler for command {type(command).__name__}")
        try:
            prompt = handler(self, command)
        except (StorageReadError, StorageWriteError) as e:
            logger.error(f"{type(command).__name__} aborted: {e}")
            return self.snapshot(alert=str(e))
        return self.snapshot(prompt=prompt)

    def render(self) -> Dict[str, Any]:
        return render(self.state, self.dashboard_limit)

    def snapshot(self, alert: Optional[str] = None, prompt: Optional[str] = None) -> Outcome:
        form = self.state.form.to_dict() if self.state.form else None
        return Outcome(view=self.render(), alert=alert, form=form, prompt=prompt)

    def _resync(self) -> None:
        self.state.reload(self.store)

    # ── handlers ──

    def _on_navigate(self, cmd: Navigate) -> None:
        self.state.set_view(ViewMode.from_str(cmd.view))

    def _on_open_form(self, cmd: OpenForm) -> None:
        if cmd.job_id:
            job = self.state.find(cmd.job_id)
            if job is None:
                raise JobNotFound(cmd.job_id)
            buffer = FormBuffer(heading="Edit Job", fields={
                "id": job.id,
                "title": job.title,
                "description": job.description,
                "status": job.status,
                "priority": job.priority,
                "due_date": job.due_date,
                "tags": ", ".join(job.tags),
            })
        else:
            buffer = FormBuffer(heading="Create New Job", fields={
                "id": "",
                "title": "",
                "description": "",
                "status": JobStatus.TODO.value,
                "priority": JobPriority.MEDIUM.value,
                "due_date": date.today().isoformat(),
                "tags": "",
            })
        self.state.open_form(buffer)

    def _on_close_form(self, cmd: CloseForm) -> None:
        self.state.close_form()

    def _on_submit(self, cmd: SubmitForm) -> None:
        data = validate_form(cmd.fields)
        if not data["id"]:
            data["id"] = make_job_id()
        job = JobRecord(**data)
        job.touch()
        self.store.upsert(job)
        logger.info(f"Saved job {job.id}: {job.title!r} [{job.status}]")
        # Committed: the buffer closes even if the reload below fails
        self.state.close_form()
        try:
            self._resync()
        except StorageReadError as e:
            raise StorageReadError(f"Job saved, but reloading jobs failed: {e}") from e

    def _on_delete(self, cmd: Delete) -> Optional[str]:
        if not cmd.confirmed:
            return DELETE_PROMPT
        self.store.delete(cmd.job_id)
        logger.info(f"Deleted job {cmd.job_id}")
        self._resync()

    def _on_drag_start(self, cmd: DragStart) -> None:
        self.state.begin_drag(cmd.job_id)

    def _on_drag_over(self, cmd: DragOver) -> None:
        self.state.hover(cmd.status)

    def _on_drag_leave(self, cmd: DragLeave) -> None:
        self.state.hover(None)

    def _on_drop(self, cmd: Drop) -> None:
        job_id = cmd.job_id or self.state.dragging
        self.state.end_drag()
        if not JobStatus.is_known(cmd.status):
            raise ValueError(f"Unknown column: {cmd.status!r}")
        if not job_id:
            return
        job = self.state.find(job_id)
        if job is None or job.status == cmd.status:
            return
        # Copy so a failed write leaves the snapshot untouched
        moved = dataclasses.replace(job, status=cmd.status, tags=list(job.tags))
        moved.touch()
        self.store.upsert(moved)
        logger.info(f"Moved job {job_id}: {job.status} -> {cmd.status}")
        self._resync()

    def _on_search(self, cmd: Search) -> None:
        self.state.set_filter(cmd.query)

    HANDLERS: Dict[type, Callable] = {
        Navigate: _on_navigate,
        OpenForm: _on_open_form,
        CloseForm: _on_close_form,
        SubmitForm: _on_submit,
        Delete: _on_delete,
        DragStart: _on_drag_start,
        DragOver: _on_drag_over,
        DragLeave: _on_drag_leave,
        Drop: _on_drop,
        Search: _on_search,
    }
