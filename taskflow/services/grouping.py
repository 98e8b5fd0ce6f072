"""Grouping and search filtering for the board and list views.

Pure functions over task lists. ``group_tasks`` filters first, then performs a
stable partition: tasks keep their input order inside each group, and groups
appear in the order their first task appears. Empty groups are never emitted.
"""
from typing import Callable, Dict, Iterable, List, Optional

from config import (
    ALL_TASKS_LABEL,
    NO_PHASE_LABEL,
    NO_SPRINT_LABEL,
    UNASSIGNED_LABEL,
    GroupBy,
)
from models.entities import Phase, Task


def matches_search(task: Task, query: Optional[str]) -> bool:
    """Case-insensitive substring match over name and description."""
    if not query or not query.strip():
        return True
    needle = query.strip().lower()
    return needle in task.name.lower() or needle in (task.description or "").lower()


def filter_tasks(tasks: Iterable[Task], query: Optional[str]) -> List[Task]:
    return [t for t in tasks if matches_search(t, query)]


def phase_names(phases: Iterable[Phase]) -> Dict[str, str]:
    return {p.id: p.name for p in phases}


def phase_label(task: Task, names_by_id: Dict[str, str]) -> str:
    """Resolve a task's phase name at render time.

    Unresolvable ids (deleted phase, phase from another project) read as
    "No Phase".
    """
    if task.phase_id is None:
        return NO_PHASE_LABEL
    return names_by_id.get(task.phase_id, NO_PHASE_LABEL)


def _key_func(group_by: GroupBy, phases: Iterable[Phase]) -> Callable[[Task], str]:
    if group_by == GroupBy.STATUS:
        return lambda t: t.status.value.upper()
    if group_by == GroupBy.ASSIGNEE:
        return lambda t: t.assignee.name if t.assignee else UNASSIGNED_LABEL
    if group_by == GroupBy.PHASE:
        names = phase_names(phases)
        return lambda t: phase_label(t, names)
    if group_by == GroupBy.SPRINT:
        return lambda t: t.sprint or NO_SPRINT_LABEL
    return lambda t: ALL_TASKS_LABEL


def group_label(task: Task, group_by: GroupBy, phases: Iterable[Phase] = ()) -> str:
    """Label of the group a single task belongs to."""
    return _key_func(group_by, phases)(task)


def group_tasks(
    tasks: Iterable[Task],
    group_by: GroupBy = GroupBy.NONE,
    query: Optional[str] = None,
    phases: Iterable[Phase] = (),
) -> Dict[str, List[Task]]:
    """Partition the search-filtered tasks by the grouping key.

    Args:
        tasks: Task list in display order.
        group_by: Grouping key.
        query: Optional search string applied before grouping.
        phases: Phase list of the current project, used to resolve labels
            when grouping by phase.

    Returns:
        Ordered mapping of group label to tasks. Every matching task appears
        in exactly one group.
    """
    key = _key_func(group_by, phases)
    grouped: Dict[str, List[Task]] = {}
    for task in filter_tasks(tasks, query):
        grouped.setdefault(key(task), []).append(task)
    return grouped
