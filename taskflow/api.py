"""Programmatic API facade for the TaskFlow board.

Composes the board store, deal store, preferences and the remaining entity
clients into operations that span more than one of them (e.g. dropping a
card on another group is a field update plus a reorder).

Usage:
    from core import bootstrap
    from api import TaskFlowAPI

    svc = await bootstrap(db_path=Path(":memory:"))
    api = TaskFlowAPI(svc)

    await api.open_project("proj-1")
    await api.drop_task("task-3", "task-1")
"""
import logging
from typing import Any, Dict, List, Optional

from config import GroupBy, StageId
from core import ServiceContainer
from events import AppEvent, Notification, event_bus
from models.adapters import contact_from_api, customer_from_api, project_from_api, user_from_api
from models.entities import BoardState, Contact, Customer, Deal, Project, Task
from services.api_client import ApiError
from services.board_store import MoveResult
from services.grouping import group_label
from services.stats import ProjectStats

logger = logging.getLogger(__name__)


class TaskFlowAPI:
    """High-level facade over the board services.

    Remote failures are reported through AppEvent.NOTIFY and turned into
    empty or False results; nothing here raises ApiError.
    """

    def __init__(self, services: ServiceContainer) -> None:
        self._svc = services

    @property
    def state(self) -> BoardState:
        return self._svc.board.state

    async def _fetch_list(self, what: str, call) -> List[Dict[str, Any]]:
        try:
            return await call()
        except ApiError as e:
            logger.warning(f"Loading {what} failed: {e}")
            event_bus.emit(AppEvent.NOTIFY, Notification.error(f"Failed to load {what}: {e}"))
            return []

    # ------------------------------------------------------------------
    # Projects and people
    # ------------------------------------------------------------------

    async def list_projects(self) -> List[Project]:
        raw = await self._fetch_list("projects", self._svc.api.projects.get_all)
        return [project_from_api(d) for d in raw]

    async def load_users(self) -> None:
        """Fetch users so bare assignee ids resolve to names."""
        raw = await self._fetch_list("users", self._svc.api.users.get_all)
        self._svc.board.users = {u.id: u for u in (user_from_api(d) for d in raw)}

    async def open_project(self, project_id: str) -> bool:
        if not self._svc.board.users:
            await self.load_users()
        self._svc.board.set_group_by(self._svc.preferences.group_by)
        return await self._svc.board.load_project(project_id)

    async def list_customers(self) -> List[Customer]:
        raw = await self._fetch_list("customers", self._svc.api.customers.get_all)
        return [customer_from_api(d) for d in raw]

    async def contacts_for(self, customer_id: str) -> List[Contact]:
        raw = await self._fetch_list(
            "contacts", lambda: self._svc.api.contacts.get_by_customer(customer_id)
        )
        return [contact_from_api(d) for d in raw]

    # ------------------------------------------------------------------
    # Board
    # ------------------------------------------------------------------

    async def set_group_by(self, group_by: GroupBy) -> None:
        self._svc.board.set_group_by(group_by)
        await self._svc.preferences.set_group_by(group_by)

    def grouped_tasks(self) -> Dict[str, List[Task]]:
        return self._svc.board.grouped()

    async def drop_task(self, dragged_id: str, target_id: str) -> MoveResult:
        """Drop one card onto another, inside its group or across groups."""
        board = self._svc.board
        dragged = self.state.find_task(dragged_id)
        target = self.state.find_task(target_id)
        if dragged is None or target is None or dragged_id == target_id:
            return MoveResult(field_saved=True, order_saved=True)

        group_by = self.state.group_by
        source_label = group_label(dragged, group_by, board.phases)
        target_label = group_label(target, group_by, board.phases)
        if source_label == target_label:
            saved = await board.reorder(dragged_id, target_id, target_label)
            return MoveResult(field_saved=True, order_saved=saved)
        return await board.move_to_group(dragged_id, target_id, group_by, target_label)

    async def update_task(self, task_id: str, field_name: str, value: Any) -> bool:
        return await self._svc.board.update_field(task_id, field_name, value)

    async def delete_task(self, task_id: str) -> bool:
        return await self._svc.board.remove(task_id)

    def project_stats(self) -> ProjectStats:
        board = self._svc.board
        return self._svc.stats.calculate_project_stats(board.tasks, board.phases)

    # ------------------------------------------------------------------
    # Deals
    # ------------------------------------------------------------------

    async def load_deals(self) -> List[Deal]:
        await self._svc.deals.load()
        return self._svc.deals.deals

    def deal_columns(self, query: Optional[str] = None) -> Dict[StageId, List[Deal]]:
        if query is not None:
            self._svc.deals.set_search(query)
        return self._svc.deals.by_stage()

    async def move_deal(self, deal_id: str, stage: Any) -> bool:
        return await self._svc.deals.move_stage(deal_id, stage)
