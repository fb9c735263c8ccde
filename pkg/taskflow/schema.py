"""
Job record schema.

A job moves between four kanban columns:
  todo → in-progress → review → done

Any column can be reached from any other (drag and drop), so there is no
transition table. Status is stored as a plain string so that records with
a value outside JobStatus survive a round-trip through the store.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any
import json
import time
import uuid


class JobStatus(Enum):
    """Kanban columns, in board order."""
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"

    @classmethod
    def values(cls) -> List[str]:
        return [s.value for s in cls]

    @classmethod
    def is_known(cls, value: str) -> bool:
        return value in cls.values()


class JobPriority(Enum):
    """Display-only priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def values(cls) -> List[str]:
        return [p.value for p in cls]


class ViewMode(Enum):
    """Interchangeable renderings of the job collection."""
    DASHBOARD = "dashboard"
    KANBAN = "kanban"
    LIST = "list"

    @classmethod
    def from_str(cls, value: str) -> "ViewMode":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown view: {value!r}. Expected one of {[v.value for v in cls]}"
            )


def utc_now() -> str:
    """ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def make_job_id() -> str:
    """Generate a sortable unique job ID (ms-precision timestamp + random hex)."""
    ts = int(time.time() * 1000)
    rand = uuid.uuid4().hex[:8]
    return f"job-{ts}-{rand}"


def parse_tags(text: str) -> List[str]:
    """Split comma-separated user input into trimmed, non-empty tags."""
    return [t.strip() for t in (text or "").split(",") if t.strip()]


def parse_due(value: str) -> Optional[date]:
    """Parse an ISO calendar date, or None if it isn't one."""
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        return None


def format_due(value: str) -> str:
    """Short month + day, e.g. 'Jun 1'. Unparseable input is returned as-is."""
    d = parse_due(value)
    if d is None:
        return value or ""
    return f"{d.strftime('%b')} {d.day}"


@dataclass
class JobRecord:
    """A single tracked job."""

    # Identity
    id: str                          # Opaque unique id (e.g., job-1717200000000-1a2b3c4d)

    # Content
    title: str
    description: str = ""

    # Placement & styling
    status: str = JobStatus.TODO.value
    priority: str = JobPriority.MEDIUM.value

    # Scheduling
    due_date: str = ""               # YYYY-MM-DD

    # Search
    tags: List[str] = field(default_factory=list)

    # Metadata
    updated_at: str = ""

    def touch(self) -> None:
        """Stamp updated_at; called on every save."""
        self.updated_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "due_date": self.due_date,
            "tags": list(self.tags),
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobRecord":
        """Deserialize from dict. Accepts snake_case and the legacy camelCase keys."""
        tags = data.get("tags", [])
        if isinstance(tags, str):
            try:
                tags = json.loads(tags)
            except json.JSONDecodeError:
                tags = parse_tags(tags)

        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            description=data.get("description", data.get("desc", "")) or "",
            status=data.get("status") or JobStatus.TODO.value,
            priority=data.get("priority") or JobPriority.MEDIUM.value,
            due_date=data.get("due_date", data.get("dueDate", "")) or "",
            tags=list(tags) if isinstance(tags, list) else [],
            updated_at=data.get("updated_at", data.get("updatedAt", "")) or "",
        )
