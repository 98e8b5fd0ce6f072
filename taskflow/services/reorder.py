from dataclasses import dataclass, field
from typing import Dict, List, Sequence, TypeVar

from models.entities import Task

T = TypeVar("T")


@dataclass
class ReorderResult:
    """Outcome of a drag-reorder.

    ``tasks`` is the new display sequence (same Task objects, not yet
    mutated), ``orders`` the order value for every renumbered task, and
    ``changed`` the renumbered ids whose order value actually differs from
    before. Only ``changed`` is persisted.
    """
    tasks: List[Task]
    orders: Dict[str, int] = field(default_factory=dict)
    changed: List[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.changed


def move_item(items: Sequence[T], old_index: int, new_index: int) -> List[T]:
    """Splice semantics: remove at old_index, insert at new_index."""
    result = list(items)
    moved = result.pop(old_index)
    result.insert(new_index, moved)
    return result


def _index_of(tasks: Sequence[Task], task_id: str) -> int:
    for i, t in enumerate(tasks):
        if t.id == task_id:
            return i
    return -1


def _is_dense(tasks: Sequence[Task]) -> bool:
    return [t.order for t in tasks] == list(range(1, len(tasks) + 1))


def compute_reorder(tasks: Sequence[Task], dragged_id: str, target_id: str) -> ReorderResult:
    """Move the dragged task onto the target's position in the displayed list.

    The dragged task takes the target's index and the tasks between the two
    original indices shift by one. Orders become ``index + 1``. When the list
    already holds orders 1..n only the span between the two indices is
    renumbered; otherwise (a group cut out of a larger list) every task is.
    Missing ids or a self-drop return the list unchanged with no changes.
    """
    current = list(tasks)
    if dragged_id == target_id:
        return ReorderResult(tasks=current)

    old_index = _index_of(current, dragged_id)
    new_index = _index_of(current, target_id)
    if old_index == -1 or new_index == -1:
        return ReorderResult(tasks=current)

    reordered = move_item(current, old_index, new_index)
    if _is_dense(current):
        span = range(min(old_index, new_index), max(old_index, new_index) + 1)
    else:
        span = range(len(reordered))
    orders = {reordered[i].id: i + 1 for i in span}
    changed = [reordered[i].id for i in span if reordered[i].order != i + 1]
    return ReorderResult(tasks=reordered, orders=orders, changed=changed)


def splice_into(full: List[Task], displayed_before: Sequence[Task], displayed_after: Sequence[Task]) -> List[Task]:
    """Write a reordered display subset back into the full list.

    The slots the displayed tasks occupied in ``full`` are refilled with the
    new display order; tasks hidden by a filter stay where they were.
    """
    shown = {t.id for t in displayed_before}
    replacement = iter(displayed_after)
    return [next(replacement) if t.id in shown else t for t in full]
