"""Tests for the TaskFlowAPI facade, wired through bootstrap() to a fake backend."""
import json
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from api import TaskFlowAPI
from config import GroupBy, StageId, STORAGE_KEYS, TaskStatus
from core import ServiceContainer, bootstrap, shutdown
from database import db
from events import AppEvent
from registry import registry, Services
from services.api_client import ApiClient
from conftest import PROJECT_ID, sample_deals, sample_phases, sample_tasks


class FakeBackend:
    """Routes REST calls to in-memory lists and wraps answers in the envelope."""

    def __init__(self):
        self.tasks = {t["taskID"]: t for t in sample_tasks()}
        self.phases = sample_phases()
        self.deals = {d["dealID"]: d for d in sample_deals()}
        self.requests = []
        self.reject = set()
        self.reject_fields = set()

    def _ok(self, data):
        return httpx.Response(200, json={"success": True, "data": data})

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))
        if (request.method, path) in self.reject:
            return httpx.Response(500, json={"success": False, "error": "Backend exploded"})
        if request.method == "PUT" and self.reject_fields & set(body or {}):
            return httpx.Response(409, json={"success": False, "error": "Conflict"})

        if path == "/projects":
            return self._ok([{"projectID": PROJECT_ID, "name": "Website"}])
        if path == "/users":
            return self._ok([{"userID": "u1", "name": "Lan Pham"}])
        if path == f"/tasks/project/{PROJECT_ID}":
            return self._ok(list(self.tasks.values()))
        if path == f"/phases/project/{PROJECT_ID}":
            return self._ok(self.phases)
        if path == "/customers":
            return self._ok([{"customerID": "c1", "customerName": "Acme"}])
        if path == "/contacts/customer/c1":
            return self._ok([{"contactID": "k1", "fullName": "Minh Tran", "customerID": "c1"}])
        if path == "/deals":
            return self._ok(list(self.deals.values()))
        if path.startswith("/tasks/") and request.method == "PUT":
            task = self.tasks[path.rsplit("/", 1)[1]]
            task.update(body)
            return self._ok(task)
        if path.startswith("/tasks/") and request.method == "DELETE":
            self.tasks.pop(path.rsplit("/", 1)[1], None)
            return self._ok(None)
        if path.startswith("/deals/") and request.method == "PUT":
            deal = self.deals[path.rsplit("/", 1)[1]]
            deal.update(body)
            return self._ok(deal)
        return httpx.Response(404, json={"success": False, "error": f"No route {path}"})

    def sent(self, method: str, prefix: str):
        return [(p, b) for m, p, b in self.requests if m == method and p.startswith(prefix)]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def services(backend: FakeBackend) -> ServiceContainer:
    await db.close()
    db._initialized = False
    db._conn_lock = None
    db._init_lock = None
    http = ApiClient(
        base_url="http://backend.test/api",
        client=httpx.AsyncClient(transport=httpx.MockTransport(backend.handler)),
    )
    svc = await bootstrap(db_path=Path(":memory:"), api_client=http)
    yield svc
    await shutdown(svc)


@pytest_asyncio.fixture
async def api(services: ServiceContainer) -> TaskFlowAPI:
    facade = TaskFlowAPI(services)
    await facade.open_project(PROJECT_ID)
    return facade


class TestBootstrap:
    async def test_registers_services(self, services: ServiceContainer):
        assert registry.require(Services.BOARD_STORE) is services.board
        assert registry.require(Services.PREFERENCES) is services.preferences

    async def test_shutdown_clears_registry(self, services: ServiceContainer):
        await shutdown(services)
        assert registry.get(Services.BOARD_STORE) is None
        with pytest.raises(KeyError):
            registry.require(Services.PREFERENCES)

    async def test_board_starts_with_stored_group_by(self, backend: FakeBackend):
        await db.close()
        await db.set_value(STORAGE_KEYS["GROUP_BY"], "sprint")
        http = ApiClient(client=httpx.AsyncClient(transport=httpx.MockTransport(backend.handler)))
        svc = await bootstrap(api_client=http)
        assert svc.board.state.group_by == GroupBy.SPRINT
        await shutdown(svc)


class TestProjects:
    async def test_list_projects(self, api: TaskFlowAPI):
        projects = await api.list_projects()
        assert [(p.id, p.name) for p in projects] == [(PROJECT_ID, "Website")]

    async def test_open_project_loads_board(self, api: TaskFlowAPI):
        assert api.state.active_project_id == PROJECT_ID
        assert list(api.grouped_tasks()) == ["Strategy", "Build"]

    async def test_failed_list_notifies_and_returns_empty(self, api: TaskFlowAPI, backend, collector):
        backend.reject.add(("GET", "/customers"))
        assert await api.list_customers() == []
        assert collector.count(AppEvent.NOTIFY) == 1

    async def test_contacts_for_customer(self, api: TaskFlowAPI):
        contacts = await api.contacts_for("c1")
        assert [c.full_name for c in contacts] == ["Minh Tran"]


class TestDropTask:
    async def test_same_group_reorders(self, api: TaskFlowAPI, backend: FakeBackend):
        result = await api.drop_task("t4", "t3")
        assert result.ok
        assert [t.id for t in api.grouped_tasks()["Build"]] == ["t4", "t3"]
        assert {p for p, _ in backend.sent("PUT", "/tasks/")} == {"/tasks/t3", "/tasks/t4"}

    async def test_cross_group_updates_phase(self, api: TaskFlowAPI, backend: FakeBackend):
        result = await api.drop_task("t1", "t3")
        assert result.ok
        assert api.state.find_task("t1").phase_id == "ph-2"
        assert ("/tasks/t1", {"phaseID": "ph-2"}) in backend.sent("PUT", "/tasks/")

    async def test_cross_group_rejected_field_reverts(self, api: TaskFlowAPI, backend: FakeBackend):
        await api.set_group_by(GroupBy.STATUS)
        backend.reject_fields.add("status")
        result = await api.drop_task("t1", "t4")
        assert result.field_saved is False
        assert result.order_saved is True
        assert api.state.find_task("t1").status == TaskStatus.TODO

    async def test_self_drop(self, api: TaskFlowAPI, backend: FakeBackend):
        result = await api.drop_task("t2", "t2")
        assert result.ok
        assert backend.sent("PUT", "/tasks/") == []

    async def test_set_group_by_persists(self, api: TaskFlowAPI):
        await api.set_group_by(GroupBy.ASSIGNEE)
        assert await db.get_value(STORAGE_KEYS["GROUP_BY"]) == "assignee"
        assert list(api.grouped_tasks()) == ["Unassigned"]


class TestTasksAndStats:
    async def test_update_and_delete(self, api: TaskFlowAPI, backend: FakeBackend):
        assert await api.update_task("t1", "budget", 100.0) is True
        assert await api.update_task("t1", "spent", 150.0) is True
        assert api.project_stats().budget_remaining == -50
        assert await api.delete_task("t2") is True
        assert "t2" not in backend.tasks

    async def test_failed_delete_keeps_task(self, api: TaskFlowAPI, backend: FakeBackend):
        backend.reject.add(("DELETE", "/tasks/t2"))
        assert await api.delete_task("t2") is False
        assert [t.id for t in api._svc.board.tasks] == ["t1", "t2", "t3", "t4"]


class TestDeals:
    async def test_columns_and_move(self, api: TaskFlowAPI, backend: FakeBackend):
        deals = await api.load_deals()
        assert len(deals) == 4
        assert await api.move_deal("d1", "won") is True
        assert [d.id for d in api.deal_columns()[StageId.CLOSED_WON]] == ["d1", "d2", "d4"]
        assert backend.deals["d1"]["stage"] == "closed_won"

    async def test_columns_with_search(self, api: TaskFlowAPI):
        await api.load_deals()
        columns = api.deal_columns("acme")
        assert [d.id for d in columns[StageId.NEW]] == ["d1"]
        assert columns[StageId.CLOSED_WON] == []
