"""In-session store behind the workspace list and board views.

Holds the per-project task and phase lists and mediates every mutation
through ``services.optimistic``: the local change is visible immediately,
the backend call follows, and a rejected call restores the previous state
before the failure is reported. Remote failures never propagate to callers;
they become a ``False`` return value plus an ``AppEvent.NOTIFY`` toast.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from config import (
    COLOR_PALETTE,
    COPY_SUFFIX,
    DEFAULT_PHASES,
    NO_PHASE_LABEL,
    NO_SPRINT_LABEL,
    UNASSIGNED_LABEL,
    GroupBy,
    TaskStatus,
)
from database import db, DatabaseError
from events import AppEvent, Notification, event_bus
from models.adapters import (
    TASK_FIELD_TO_API,
    coerce_task_value,
    phase_from_api,
    task_create_payload,
    task_from_api,
    task_update_payload,
)
from models.entities import BoardState, Phase, Task, User
from services.api_client import ApiError, PhasesApi, TasksApi
from services.grouping import filter_tasks, group_tasks
from services.optimistic import attr_accessors, optimistic_set, run_optimistic
from services.reorder import compute_reorder, splice_into

logger = logging.getLogger(__name__)


def default_phases(project_id: str) -> List[Phase]:
    """Fresh copy of the starter phase set with new ids."""
    return [
        Phase(
            id=f"phase-{uuid.uuid4().hex[:12]}",
            project_id=project_id,
            name=p["name"],
            color=p["color"],
            order=i + 1,
        )
        for i, p in enumerate(DEFAULT_PHASES)
    ]


@dataclass
class MoveResult:
    """Outcome of a cross-group drag. Each half succeeds or reverts alone."""
    field_saved: bool
    order_saved: bool

    @property
    def ok(self) -> bool:
        return self.field_saved and self.order_saved


class BoardStore:
    """Authoritative in-session copy of tasks and phases per project."""

    def __init__(
        self,
        tasks_api: TasksApi,
        phases_api: PhasesApi,
        state: Optional[BoardState] = None,
        users: Optional[Dict[str, User]] = None,
    ) -> None:
        self.tasks_api = tasks_api
        self.phases_api = phases_api
        self.state = state or BoardState()
        self.users: Dict[str, User] = users or {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _error_reporter(self, action: str):
        def report(error: ApiError) -> None:
            event_bus.emit(AppEvent.NOTIFY, Notification.error(f"{action}: {error}"))
        return report

    async def _mirror(self, project_id: Optional[str]) -> None:
        """Copy a project's lists into the offline cache."""
        if project_id is None:
            return
        try:
            await db.save_project_cache(
                project_id,
                self.state.tasks_for(project_id),
                self.state.phases_for(project_id),
            )
        except DatabaseError as e:
            logger.error(f"Could not mirror project {project_id} to local storage: {e}")

    @property
    def tasks(self) -> List[Task]:
        return self.state.tasks_for(self.state.active_project_id)

    @property
    def phases(self) -> List[Phase]:
        return self.state.phases_for(self.state.active_project_id)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_project(self, project_id: str) -> bool:
        """Fetch phases and tasks and make project_id the active project.

        On failure the offline copy is used when one exists, otherwise an
        empty task list with the default phases. Never raises.

        Returns:
            True if the lists came from the backend.
        """
        self.state.active_project_id = project_id
        self.state.active_phase_id = None
        try:
            raw_tasks, raw_phases = await asyncio.gather(
                self.tasks_api.get_by_project(project_id),
                self.phases_api.get_by_project(project_id),
            )
        except ApiError as e:
            logger.warning(f"Loading project {project_id} failed: {e}")
            cached = await db.load_project_cache(project_id)
            if cached is not None:
                tasks, phases = cached
                message = f"Showing offline copy, could not load project: {e}"
            else:
                tasks, phases = [], default_phases(project_id)
                message = f"Failed to load project: {e}"
            self.state.project_tasks[project_id] = tasks
            self.state.project_phases[project_id] = phases
            event_bus.emit(AppEvent.NOTIFY, Notification.error(message))
            event_bus.emit(AppEvent.TASKS_LOADED, project_id)
            return False

        tasks = [task_from_api(d, self.users) for d in raw_tasks]
        for t in tasks:
            if not t.project_id:
                t.project_id = project_id
        phases = [phase_from_api(d, project_id) for d in raw_phases]
        self.state.project_tasks[project_id] = sorted(tasks, key=lambda t: t.order)
        self.state.project_phases[project_id] = sorted(phases, key=lambda p: p.order)
        await self._mirror(project_id)
        event_bus.emit(AppEvent.TASKS_LOADED, project_id)
        return True

    def unload_project(self, project_id: str) -> None:
        self.state.evict(project_id)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def select_phase(self, phase_id: Optional[str]) -> None:
        self.state.active_phase_id = phase_id

    def set_group_by(self, group_by: GroupBy) -> None:
        self.state.group_by = group_by

    def set_search(self, query: str) -> None:
        self.state.search_query = query or ""

    def visible_tasks(self) -> List[Task]:
        """Active project's tasks, narrowed to the selected phase if any."""
        tasks = self.tasks
        if self.state.active_phase_id is None:
            return list(tasks)
        return [t for t in tasks if t.phase_id == self.state.active_phase_id]

    def grouped(self) -> Dict[str, List[Task]]:
        return group_tasks(
            self.visible_tasks(),
            self.state.group_by,
            self.state.search_query,
            self.phases,
        )

    def displayed(self, group_label: Optional[str] = None) -> List[Task]:
        """The list a drag happens in: one group, or the whole filtered view."""
        if group_label is None:
            return filter_tasks(self.visible_tasks(), self.state.search_query)
        return self.grouped().get(group_label, [])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def update_field(self, task_id: str, field_name: str, value: Any) -> bool:
        """Optimistically set one task field and send only that field.

        Raises:
            ValueError: If field_name is not an editable task field, or value
                cannot be converted to that field's type.
        """
        value = coerce_task_value(field_name, value)
        payload = task_update_payload(field_name, value)
        task = self.state.find_task(task_id)
        if task is None:
            logger.warning(f"update_field: unknown task {task_id}")
            return False
        if getattr(task, field_name) == value:
            return True

        getter, setter = attr_accessors(task, field_name)
        ok = await optimistic_set(
            getter, setter, value,
            persist=lambda: self.tasks_api.update(task_id, payload),
            on_error=self._error_reporter("Failed to update task"),
        )
        if ok:
            event_bus.emit(AppEvent.TASK_UPDATED, task)
            await self._mirror(task.project_id)
        else:
            event_bus.emit(AppEvent.TASK_REVERTED, task)
        return ok

    async def reorder(
        self, dragged_id: str, target_id: str, group_context: Optional[str] = None
    ) -> bool:
        """Move dragged_id onto target_id's slot within the displayed list.

        group_context names the group both cards sit in; None means the whole
        filtered view. Only tasks whose order value changed are written, all
        at once. A failed write restores the previous list and orders.

        Returns:
            False only when persistence failed.
        """
        project_id = self.state.active_project_id
        full = self.state.tasks_for(project_id)
        displayed = self.displayed(group_context)
        result = compute_reorder(displayed, dragged_id, target_id)
        if not result.orders:
            return True

        old_list = list(full)
        old_orders = {t.id: t.order for t in displayed}

        def apply() -> None:
            full[:] = splice_into(full, displayed, result.tasks)
            for t in result.tasks:
                if t.id in result.orders:
                    t.order = result.orders[t.id]

        def revert() -> None:
            full[:] = old_list
            for t in displayed:
                t.order = old_orders[t.id]

        def persist():
            return self._persist_orders(
                {tid: result.orders[tid] for tid in result.changed}, old_orders
            )

        ok = await run_optimistic(apply, persist, revert, self._error_reporter("Failed to save task order"))
        if ok:
            event_bus.emit(AppEvent.TASKS_REORDERED, result.changed)
            await self._mirror(project_id)
        else:
            event_bus.emit(AppEvent.TASK_REVERTED, dragged_id)
        return ok

    async def _persist_orders(self, orders: Dict[str, int], previous: Dict[str, int]) -> None:
        """Write order values concurrently.

        If any write fails, the ones the backend already accepted are set
        back to their previous values before the first error is re-raised,
        so the backend matches the locally reverted list.
        """
        task_ids = list(orders)
        results = await asyncio.gather(
            *(self.tasks_api.update(tid, task_update_payload("order", orders[tid])) for tid in task_ids),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if not errors:
            return
        accepted = [tid for tid, r in zip(task_ids, results) if not isinstance(r, BaseException)]
        undo = await asyncio.gather(
            *(self.tasks_api.update(tid, task_update_payload("order", previous[tid])) for tid in accepted),
            return_exceptions=True,
        )
        for tid, r in zip(accepted, undo):
            if isinstance(r, BaseException):
                logger.warning(f"Could not restore order of task {tid} after a failed reorder: {r}")
        raise errors[0]

    def _group_value(self, group_by: GroupBy, group_label: str) -> Optional[Tuple[str, Any]]:
        """Translate a target group label back into the field it encodes."""
        if group_by == GroupBy.STATUS:
            try:
                return "status", TaskStatus(group_label.lower())
            except ValueError:
                return None
        if group_by == GroupBy.PHASE:
            if group_label == NO_PHASE_LABEL:
                return "phase_id", None
            for p in self.phases:
                if p.name == group_label:
                    return "phase_id", p.id
            return None
        if group_by == GroupBy.SPRINT:
            return "sprint", "" if group_label == NO_SPRINT_LABEL else group_label
        if group_by == GroupBy.ASSIGNEE:
            if group_label == UNASSIGNED_LABEL:
                return "assignee", None
            for user in self.users.values():
                if user.name == group_label:
                    return "assignee", user.as_assignee()
            for t in self.tasks:
                if t.assignee and t.assignee.name == group_label:
                    return "assignee", t.assignee
            return None
        return None

    async def move_to_group(
        self, task_id: str, target_id: str, group_by: GroupBy, group_label: str
    ) -> MoveResult:
        """Cross-group drag: field update, then reorder.

        The two halves persist independently; a failure reverts only its own
        half.
        """
        field_saved = True
        change = self._group_value(group_by, group_label)
        if change is not None:
            field_name, value = change
            field_saved = await self.update_field(task_id, field_name, value)
        elif group_by != GroupBy.NONE:
            logger.warning(f"move_to_group: no field for group '{group_label}' under {group_by.value}")

        order_saved = await self.reorder(task_id, target_id)
        return MoveResult(field_saved=field_saved, order_saved=order_saved)

    async def remove(self, task_id: str) -> bool:
        """Delete a task; a rejected delete puts it back at its old index."""
        project_id = self.state.project_of(task_id)
        if project_id is None:
            return False
        tasks = self.state.tasks_for(project_id)
        index = next(i for i, t in enumerate(tasks) if t.id == task_id)
        task = tasks[index]

        ok = await run_optimistic(
            apply=lambda: tasks.pop(index),
            persist=lambda: self.tasks_api.delete(task_id),
            revert=lambda: tasks.insert(min(index, len(tasks)), task),
            on_error=self._error_reporter("Failed to delete task"),
        )
        if ok:
            event_bus.emit(AppEvent.TASK_DELETED, task)
            await self._mirror(project_id)
        else:
            event_bus.emit(AppEvent.TASK_REVERTED, task)
        return ok

    async def _create(self, draft: Task, index: Optional[int] = None) -> Optional[Task]:
        try:
            created = await self.tasks_api.create(task_create_payload(draft))
        except ApiError as e:
            logger.warning(f"Creating task '{draft.name}' failed: {e}")
            event_bus.emit(AppEvent.NOTIFY, Notification.error(f"Failed to create task: {e}"))
            return None
        task = task_from_api(created, self.users)
        if not task.project_id:
            task.project_id = draft.project_id
        tasks = self.state.tasks_for(task.project_id)
        if index is None:
            tasks.append(task)
        else:
            tasks.insert(index, task)
        event_bus.emit(AppEvent.TASK_CREATED, task)
        await self._mirror(task.project_id)
        return task

    async def add_task(self, name: str, **fields: Any) -> Optional[Task]:
        """Create a task in the active project and append it.

        fields may hold any editable Task attribute (phase_id, status, ...).
        """
        unknown = set(fields) - set(TASK_FIELD_TO_API)
        if unknown:
            raise ValueError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        project_id = self.state.active_project_id
        if project_id is None:
            raise ValueError("No active project")
        draft = Task(id="", name=name, project_id=project_id, **fields)
        if "order" not in fields:
            draft.order = len(self.state.tasks_for(project_id)) + 1
        return await self._create(draft)

    async def duplicate_task(self, task_id: str) -> Optional[Task]:
        """Create a copy named "<name> (Copy)" right after the original."""
        source = self.state.find_task(task_id)
        if source is None:
            return None
        draft = Task.from_dict(source.to_dict())
        draft.id = ""
        draft.name = f"{source.name}{COPY_SUFFIX}"
        tasks = self.state.tasks_for(source.project_id)
        return await self._create(draft, index=tasks.index(source) + 1)

    async def add_phase(self, name: str, color: Optional[str] = None) -> Optional[Phase]:
        project_id = self.state.active_project_id
        if project_id is None:
            raise ValueError("No active project")
        phases = self.state.phases_for(project_id)
        color = color or COLOR_PALETTE[len(phases) % len(COLOR_PALETTE)]
        try:
            created = await self.phases_api.create({
                "projectID": project_id,
                "name": name,
                "color": color,
                "order": len(phases) + 1,
            })
        except ApiError as e:
            logger.warning(f"Creating phase '{name}' failed: {e}")
            event_bus.emit(AppEvent.NOTIFY, Notification.error(f"Failed to create phase: {e}"))
            return None
        phase = phase_from_api(created, project_id)
        phases.append(phase)
        event_bus.emit(AppEvent.PHASE_CREATED, phase)
        await self._mirror(project_id)
        return phase

    async def delete_phase(self, phase_id: str) -> bool:
        """Delete a phase. Its tasks keep their phase_id and read as "No Phase"."""
        project_id = self.state.active_project_id
        phases = self.state.phases_for(project_id)
        index = next((i for i, p in enumerate(phases) if p.id == phase_id), None)
        if index is None:
            return False
        phase = phases[index]

        ok = await run_optimistic(
            apply=lambda: phases.pop(index),
            persist=lambda: self.phases_api.delete(phase_id),
            revert=lambda: phases.insert(min(index, len(phases)), phase),
            on_error=self._error_reporter("Failed to delete phase"),
        )
        if ok:
            if self.state.active_phase_id == phase_id:
                self.state.active_phase_id = None
            event_bus.emit(AppEvent.PHASE_DELETED, phase)
            await self._mirror(project_id)
        return ok

    async def reorder_phases(self, phase_ids: List[str]) -> bool:
        """Put the active project's phases in the given order.

        Ids not in the list keep their relative order after the listed ones.
        """
        project_id = self.state.active_project_id
        phases = self.state.phases_for(project_id)
        by_id = {p.id: p for p in phases}
        ordered = [by_id[pid] for pid in phase_ids if pid in by_id]
        ordered += [p for p in phases if p.id not in phase_ids]
        old_list = list(phases)
        old_orders = {p.id: p.order for p in phases}

        def apply() -> None:
            phases[:] = ordered
            for i, p in enumerate(phases):
                p.order = i + 1

        def revert() -> None:
            phases[:] = old_list
            for p in phases:
                p.order = old_orders[p.id]

        ok = await run_optimistic(
            apply,
            lambda: self.phases_api.reorder(project_id, [p.id for p in ordered]),
            revert,
            self._error_reporter("Failed to reorder phases"),
        )
        if ok:
            await self._mirror(project_id)
        return ok
