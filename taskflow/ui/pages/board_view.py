import flet as ft
from typing import Dict, List, Optional

from config import COLORS, GroupBy, NotificationLevel
from events import AppEvent, event_bus
from models.entities import Task
from registry import registry, Services
from services.board_store import BoardStore
from services.preferences_service import PreferencesService
from ui.helpers import SnackService, accent_btn
from ui.presenters.task_presenter import TaskPresenter


class BoardView:
    """Grouped task list for the active project.

    Rendering only: every drag, edit and delete is forwarded to the
    BoardStore, and the view rebuilds itself from the store's grouped()
    output whenever a board event arrives.
    """

    def __init__(self, page: ft.Page, snack: SnackService) -> None:
        self.page = page
        self.store: BoardStore = registry.require(Services.BOARD_STORE)
        self.preferences: PreferencesService = registry.require(Services.PREFERENCES)
        self.snack = snack
        self._lists: Dict[str, ft.ReorderableListView] = {}
        self._subscriptions = [
            event_bus.subscribe(event, self._on_board_event)
            for event in (
                AppEvent.TASKS_LOADED,
                AppEvent.TASK_CREATED,
                AppEvent.TASK_UPDATED,
                AppEvent.TASK_REVERTED,
                AppEvent.TASKS_REORDERED,
                AppEvent.TASK_DELETED,
                AppEvent.PHASE_CREATED,
                AppEvent.PHASE_DELETED,
            )
        ]
        self._build_controls()

    def _build_controls(self) -> None:
        self.search_input = ft.TextField(
            hint_text="Search tasks",
            border_color=COLORS["border"],
            expand=True,
            prefix_icon=ft.Icons.SEARCH,
            on_change=self._on_search,
        )
        self.group_dropdown = ft.Dropdown(
            value=self.store.state.group_by.value,
            options=[ft.dropdown.Option(g.value, g.value.title()) for g in GroupBy],
            on_change=self._on_group_change,
            width=160,
        )
        self.task_input = ft.TextField(
            hint_text="Add a task",
            border_color=COLORS["border"],
            expand=True,
            on_submit=self._on_submit,
            prefix_icon=ft.Icons.ADD_TASK,
        )
        self.groups_column = ft.Column(controls=[], spacing=16)

    def _on_board_event(self, _data) -> None:
        self.refresh()

    def _on_search(self, e: ft.ControlEvent) -> None:
        self.store.set_search(e.control.value)
        self.refresh()

    async def _on_group_change(self, e: ft.ControlEvent) -> None:
        group_by = GroupBy(e.control.value)
        self.store.set_group_by(group_by)
        await self.preferences.set_group_by(group_by)
        self.refresh()

    async def _on_submit(self, e: ft.ControlEvent) -> None:
        name = (self.task_input.value or "").strip()
        if not name:
            return
        self.task_input.value = ""
        await self.store.add_task(name)

    def _reorder_handler(self, group: str):
        async def on_reorder(e: ft.OnReorderEvent) -> None:
            ids = [ctrl.data for ctrl in self._lists[group].controls]
            old_idx, new_idx = e.old_index, e.new_index
            if not 0 <= old_idx < len(ids):
                return
            # Drop index counts the dragged card's old slot
            if new_idx > old_idx:
                new_idx -= 1
            new_idx = max(0, min(new_idx, len(ids) - 1))
            if new_idx == old_idx:
                return
            await self.store.reorder(ids[old_idx], ids[new_idx], group)
        return on_reorder

    def _move_handler(self, task: Task, label: str, target_id: str):
        async def on_click(_e: ft.ControlEvent) -> None:
            await self.store.move_to_group(task.id, target_id, self.store.state.group_by, label)
        return on_click

    def _delete_handler(self, task: Task):
        async def on_click(_e: ft.ControlEvent) -> None:
            if await self.store.remove(task.id):
                self.snack.show(f"Deleted '{task.name}'", NotificationLevel.SUCCESS)
        return on_click

    def _duplicate_handler(self, task: Task):
        async def on_click(_e: ft.ControlEvent) -> None:
            await self.store.duplicate_task(task.id)
        return on_click

    def _task_row(self, task: Task, index: int, groups: Dict[str, List[Task]], current: str) -> ft.Control:
        data = TaskPresenter.create_display_data(task, self.store.phases)
        menu_items = [
            ft.PopupMenuItem(text="Duplicate", on_click=self._duplicate_handler(task)),
            ft.PopupMenuItem(text="Delete", on_click=self._delete_handler(task)),
        ]
        for label, tasks in groups.items():
            if label != current and tasks:
                menu_items.append(
                    ft.PopupMenuItem(text=f"Move to {label}", on_click=self._move_handler(task, label, tasks[0].id))
                )
        row = ft.Container(
            content=ft.Row(
                [
                    ft.ReorderableDragHandle(content=ft.Icon(ft.Icons.DRAG_INDICATOR, color=COLORS["muted"])),
                    ft.Container(width=8, height=8, bgcolor=data.status_color, border_radius=4),
                    ft.Text(data.title, expand=True, color=COLORS["white"]),
                    ft.Text(data.phase_name, size=12, color=data.phase_color),
                    ft.CircleAvatar(
                        content=ft.Text(data.assignee_initials, size=10),
                        bgcolor=data.assignee_color,
                        radius=12,
                        tooltip=data.assignee_name,
                    ),
                    ft.Text(
                        data.due_date_display or "",
                        size=12,
                        color=COLORS["danger"] if data.is_overdue else COLORS["muted"],
                    ),
                    ft.Text(f"{data.progress_percent}%", size=12, color=COLORS["muted"]),
                    ft.PopupMenuButton(items=menu_items),
                ],
                spacing=10,
            ),
            padding=ft.padding.symmetric(horizontal=12, vertical=8),
            bgcolor=COLORS["card"],
            border_radius=6,
        )
        return ft.ReorderableDraggable(index=index, content=row, data=task.id)

    def refresh(self) -> None:
        groups = self.store.grouped()
        self._lists.clear()
        self.groups_column.controls.clear()
        for label, tasks in groups.items():
            task_list = ft.ReorderableListView(
                show_default_drag_handles=False,
                on_reorder=self._reorder_handler(label),
                controls=[self._task_row(t, i, groups, label) for i, t in enumerate(tasks)],
            )
            self._lists[label] = task_list
            self.groups_column.controls.append(
                ft.Column(
                    [
                        ft.Text(f"{label} ({len(tasks)})", weight="bold", color=COLORS["muted"]),
                        task_list,
                    ],
                    spacing=6,
                )
            )
        if not groups:
            self.groups_column.controls.append(ft.Text("No tasks", color=COLORS["muted"]))
        self.page.update()

    def dispose(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []

    def build(self) -> ft.Column:
        self.refresh_button = accent_btn("Reload", self._on_reload)
        return ft.Column(
            controls=[
                ft.Row([self.search_input, self.group_dropdown, self.refresh_button], spacing=10),
                self.task_input,
                ft.Divider(height=15, color="transparent"),
                self.groups_column,
            ],
            scroll=ft.ScrollMode.AUTO,
            expand=True,
        )

    async def _on_reload(self, _e: ft.ControlEvent) -> None:
        project_id: Optional[str] = self.store.state.active_project_id
        if project_id is not None:
            await self.store.load_project(project_id)
