from dataclasses import dataclass
from typing import Dict, Iterable, Optional
from datetime import date

from config import COLORS, STATUS_COLORS, UNASSIGNED_LABEL
from models.entities import Phase, Task
from services.grouping import phase_label, phase_names
from services.stats import DONE_STATUSES, format_currency, hours_progress


@dataclass
class TaskDisplayData:
    """Computed display data for a task card or list row."""
    title: str
    status_label: str
    status_color: str
    phase_name: str
    phase_color: str
    assignee_name: str
    assignee_initials: str
    assignee_color: str
    due_date_display: Optional[str]
    is_overdue: bool
    progress_percent: int
    budget_display: str
    remaining_display: str
    is_over_budget: bool


class TaskPresenter:
    """Computes display values for tasks without rendering.

    Phase names are looked up at render time, so renaming or deleting a
    phase never requires touching the tasks that point at it.
    """

    @staticmethod
    def format_due_date(due_date: Optional[date], today: Optional[date] = None) -> Optional[str]:
        if due_date is None:
            return None
        delta = (due_date - (today or date.today())).days
        if delta == 0:
            return "Today"
        if delta == 1:
            return "Tomorrow"
        return due_date.strftime("%b %d")

    @staticmethod
    def is_overdue(task: Task, today: Optional[date] = None) -> bool:
        if task.due_date is None or task.status in DONE_STATUSES:
            return False
        return task.due_date < (today or date.today())

    @staticmethod
    def status_label(task: Task) -> str:
        return task.status.value.replace("-", " ").title()

    @classmethod
    def create_display_data(
        cls,
        task: Task,
        phases: Iterable[Phase],
        today: Optional[date] = None,
    ) -> TaskDisplayData:
        phase_list = list(phases)
        names: Dict[str, str] = phase_names(phase_list)
        colors = {p.id: p.color for p in phase_list}
        assignee = task.assignee
        return TaskDisplayData(
            title=task.name,
            status_label=cls.status_label(task),
            status_color=STATUS_COLORS.get(task.status, COLORS["muted"]),
            phase_name=phase_label(task, names),
            phase_color=colors.get(task.phase_id, COLORS["muted"]),
            assignee_name=assignee.name if assignee else UNASSIGNED_LABEL,
            assignee_initials=assignee.initials if assignee else "",
            assignee_color=assignee.color if assignee else COLORS["muted"],
            due_date_display=cls.format_due_date(task.due_date, today),
            is_overdue=cls.is_overdue(task, today),
            progress_percent=hours_progress(task),
            budget_display=format_currency(task.budget),
            remaining_display=format_currency(task.budget_remaining),
            is_over_budget=task.budget_remaining < 0,
        )
