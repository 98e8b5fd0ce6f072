from dataclasses import dataclass, field
from datetime import date
from typing import Optional, List, Dict, Any

from config import (
    DEFAULT_CURRENCY,
    DEFAULT_GROUP_BY,
    GroupBy,
    StageId,
    TaskStatus,
)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def make_initials(name: str) -> str:
    """Build up to two upper-case initials from a display name."""
    parts = [p for p in name.split() if p]
    return "".join(p[0] for p in parts[:2]).upper()


@dataclass
class Assignee:
    """User reference shown on a task card."""
    name: str
    color: str = "#838a9c"
    initials: str = ""
    id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.initials:
            self.initials = make_initials(self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "initials": self.initials,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Assignee":
        return cls(
            id=d.get("id"),
            name=d["name"],
            color=d.get("color", "#838a9c"),
            initials=d.get("initials", ""),
        )


@dataclass
class Phase:
    """Project-scoped bucket for tasks. Tasks reference it by id only."""
    id: str
    project_id: str
    name: str
    color: str = "#0394ff"
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "color": self.color,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Phase":
        return cls(
            id=d["id"],
            project_id=d["project_id"],
            name=d["name"],
            color=d.get("color", "#0394ff"),
            order=d.get("order", 0),
        )


@dataclass
class Task:
    id: str
    name: str
    project_id: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    assignee: Optional[Assignee] = None
    due_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: float = 0.0
    spent: float = 0.0
    estimated_hours: float = 0.0
    actual_hours: float = 0.0
    progress: int = 0
    phase_id: Optional[str] = None
    sprint: str = ""
    order: int = 0
    parent_task_id: Optional[str] = None

    @property
    def budget_remaining(self) -> float:
        """Budget minus spent. Negative when over budget."""
        return self.budget - self.spent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "project_id": self.project_id,
            "description": self.description,
            "status": self.status.value,
            "assignee": self.assignee.to_dict() if self.assignee else None,
            "due_date": _iso(self.due_date),
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "budget": self.budget,
            "spent": self.spent,
            "estimated_hours": self.estimated_hours,
            "actual_hours": self.actual_hours,
            "progress": self.progress,
            "phase_id": self.phase_id,
            "sprint": self.sprint,
            "order": self.order,
            "parent_task_id": self.parent_task_id,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Task":
        try:
            status = TaskStatus(d.get("status", TaskStatus.TODO.value))
        except ValueError:
            status = TaskStatus.TODO
        assignee = d.get("assignee")
        return cls(
            id=d["id"],
            name=d["name"],
            project_id=d["project_id"],
            description=d.get("description", ""),
            status=status,
            assignee=Assignee.from_dict(assignee) if assignee else None,
            due_date=_parse_date(d.get("due_date")),
            start_date=_parse_date(d.get("start_date")),
            end_date=_parse_date(d.get("end_date")),
            budget=d.get("budget", 0.0),
            spent=d.get("spent", 0.0),
            estimated_hours=d.get("estimated_hours", 0.0),
            actual_hours=d.get("actual_hours", 0.0),
            progress=d.get("progress", 0),
            phase_id=d.get("phase_id"),
            sprint=d.get("sprint", ""),
            order=d.get("order", 0),
            parent_task_id=d.get("parent_task_id"),
        )


@dataclass
class Deal:
    id: str
    name: str
    value: float = 0.0
    currency: str = DEFAULT_CURRENCY
    stage: StageId = StageId.NEW
    organization: str = "Unknown"
    assignee: str = "Unknown"
    probability: int = 0
    expected_close_date: Optional[date] = None
    customer_id: Optional[str] = None
    contact_name: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    status: str = ""
    priority: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class Customer:
    id: str
    name: str
    code: str = ""
    customer_type: str = "Company"
    status: str = "Active"
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class Contact:
    id: str
    full_name: str
    customer_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_primary: bool = False


@dataclass
class User:
    id: str
    name: str
    email: str = ""
    role: str = ""
    avatar: Optional[str] = None

    def as_assignee(self, color: str = "#838a9c") -> Assignee:
        return Assignee(id=self.id, name=self.name, color=color)


@dataclass
class BoardState:
    """In-session copy of the workspace board.

    Owns no persistence; the store rehydrates it from the API and mirrors it
    into local storage.
    """
    project_tasks: Dict[str, List[Task]] = field(default_factory=dict)
    project_phases: Dict[str, List[Phase]] = field(default_factory=dict)
    active_project_id: Optional[str] = None
    active_phase_id: Optional[str] = None
    group_by: GroupBy = DEFAULT_GROUP_BY
    search_query: str = ""

    def tasks_for(self, project_id: Optional[str]) -> List[Task]:
        if project_id is None:
            return []
        return self.project_tasks.setdefault(project_id, [])

    def phases_for(self, project_id: Optional[str]) -> List[Phase]:
        if project_id is None:
            return []
        return self.project_phases.setdefault(project_id, [])

    def find_task(self, task_id: str) -> Optional[Task]:
        for tasks in self.project_tasks.values():
            for t in tasks:
                if t.id == task_id:
                    return t
        return None

    def project_of(self, task_id: str) -> Optional[str]:
        for project_id, tasks in self.project_tasks.items():
            if any(t.id == task_id for t in tasks):
                return project_id
        return None

    def evict(self, project_id: str) -> None:
        """Drop a project's lists when the user navigates away."""
        self.project_tasks.pop(project_id, None)
        self.project_phases.pop(project_id, None)
        if self.active_project_id == project_id:
            self.active_project_id = None
            self.active_phase_id = None
