from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from config import DEFAULT_CURRENCY, StageId, TaskStatus
from models.entities import Deal, Phase, Task
from services.deal_stages import PIPELINE_STAGES

DONE_STATUSES = (TaskStatus.DONE, TaskStatus.COMPLETED)


def _percent(part: float, whole: float) -> int:
    """Whole percent, halves rounded up."""
    return int(part / whole * 100 + 0.5)


@dataclass
class ProjectStats:
    """Roll-up over one project's tasks."""
    total_tasks: int
    done_tasks: int
    total_budget: float
    total_spent: float
    estimated_hours: float
    actual_hours: float
    average_progress: int
    tasks_per_phase: Dict[Optional[str], int] = field(default_factory=dict)
    tasks_per_status: Dict[TaskStatus, int] = field(default_factory=dict)

    @property
    def budget_remaining(self) -> float:
        # Negative when over budget
        return self.total_budget - self.total_spent

    @property
    def completion_percent(self) -> int:
        if self.total_tasks == 0:
            return 0
        return _percent(self.done_tasks, self.total_tasks)


def hours_progress(task: Task) -> int:
    """Progress from logged hours, capped at 100.

    Tasks without an estimate keep their stored progress value.
    """
    if task.estimated_hours <= 0:
        return task.progress
    return min(100, _percent(task.actual_hours, task.estimated_hours))


def phase_task_counts(tasks: Iterable[Task], phases: Iterable[Phase]) -> Dict[str, int]:
    """Number of tasks per phase id, including phases with no tasks."""
    counts = {p.id: 0 for p in phases}
    for t in tasks:
        if t.phase_id in counts:
            counts[t.phase_id] += 1
    return counts


def status_counts(tasks: Iterable[Task]) -> Dict[TaskStatus, int]:
    counts: Dict[TaskStatus, int] = {}
    for t in tasks:
        counts[t.status] = counts.get(t.status, 0) + 1
    return counts


class StatsService:
    """Derived totals for the workspace header and the deals board."""

    def calculate_project_stats(self, tasks: List[Task], phases: List[Phase] = ()) -> ProjectStats:
        per_phase: Dict[Optional[str], int] = dict(phase_task_counts(tasks, phases))
        orphaned = sum(1 for t in tasks if t.phase_id not in per_phase)
        if orphaned:
            per_phase[None] = orphaned
        progress = [hours_progress(t) for t in tasks]
        return ProjectStats(
            total_tasks=len(tasks),
            done_tasks=sum(1 for t in tasks if t.status in DONE_STATUSES),
            total_budget=sum(t.budget for t in tasks),
            total_spent=sum(t.spent for t in tasks),
            estimated_hours=sum(t.estimated_hours for t in tasks),
            actual_hours=sum(t.actual_hours for t in tasks),
            average_progress=round(sum(progress) / len(progress)) if progress else 0,
            tasks_per_phase=per_phase,
            tasks_per_status=status_counts(tasks),
        )

    def stage_total(self, deals: Iterable[Deal], stage: StageId) -> float:
        """Summed value of the deals sitting in one stage."""
        return sum(d.value for d in deals if d.stage == stage)

    def stage_totals(self, deals: List[Deal]) -> Dict[StageId, float]:
        return {stage: self.stage_total(deals, stage) for stage in PIPELINE_STAGES}

    def closed_won_percent(self, deals: List[Deal]) -> int:
        """Share of deals in closed_won, rounded to a whole percent."""
        if not deals:
            return 0
        won = sum(1 for d in deals if d.stage == StageId.CLOSED_WON)
        return _percent(won, len(deals))


def format_currency(value: float, currency: str = DEFAULT_CURRENCY) -> str:
    """Whole-unit amount with thousands separators, e.g. ``1.500.000 VND``."""
    return f"{value:,.0f}".replace(",", ".") + f" {currency}"
