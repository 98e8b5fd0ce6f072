"""Shared fixtures for TaskFlow tests."""
import itertools
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

import database as db_module
from database import db
from events import AppEvent, event_bus
from models.entities import BoardState
from registry import registry
from services.api_client import ApiError
from services.board_store import BoardStore
from services.deal_store import DealStore
from services.preferences_service import PreferencesService


# ---------------------------------------------------------------------------
# In-memory API fakes
# ---------------------------------------------------------------------------

class FakeEntityApi:
    """Stands in for an EntityApi subclass.

    Records every call as (method, args). Any method named in ``fail_on``
    raises ApiError; ``fail_ids`` limits update/delete failures to those ids.
    """
    prefix = "item"
    id_key = "id"

    def __init__(self, items: Optional[List[Dict[str, Any]]] = None):
        self.items: List[Dict[str, Any]] = [dict(i) for i in items or []]
        self.calls: List[tuple] = []
        self.fail_on: set = set()
        self.fail_ids: set = set()
        self.error_message = "Server unavailable"
        self._ids = itertools.count(100)

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if method in self.fail_on:
            if not self.fail_ids or (args and args[0] in self.fail_ids):
                raise ApiError(self.error_message, status_code=500)

    def calls_to(self, method: str) -> List[tuple]:
        return [args for name, args in self.calls if name == method]

    async def get_all(self) -> List[Dict[str, Any]]:
        self._record("get_all")
        return [dict(i) for i in self.items]

    async def get_by_id(self, item_id: str) -> Dict[str, Any]:
        self._record("get_by_id", item_id)
        for i in self.items:
            if i[self.id_key] == item_id:
                return dict(i)
        raise ApiError("Not found", status_code=404)

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self._record("create", data)
        created = {**data, self.id_key: f"{self.prefix}-{next(self._ids)}"}
        self.items.append(created)
        return dict(created)

    async def update(self, item_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._record("update", item_id, fields)
        for i in self.items:
            if i[self.id_key] == item_id:
                i.update(fields)
                return dict(i)
        return {self.id_key: item_id, **fields}

    async def delete(self, item_id: str) -> None:
        self._record("delete", item_id)
        self.items = [i for i in self.items if i[self.id_key] != item_id]


class FakeTasksApi(FakeEntityApi):
    prefix = "task"
    id_key = "taskID"

    async def get_by_project(self, project_id: str) -> List[Dict[str, Any]]:
        self._record("get_by_project", project_id)
        return [dict(i) for i in self.items if i.get("projectID") == project_id]


class FakePhasesApi(FakeEntityApi):
    prefix = "phase"
    id_key = "phaseID"

    async def get_by_project(self, project_id: str) -> List[Dict[str, Any]]:
        self._record("get_by_project", project_id)
        return [dict(i) for i in self.items if i.get("projectID") == project_id]

    async def reorder(self, project_id: str, phase_ids: List[str]) -> None:
        self._record("reorder", project_id, phase_ids)


class FakeDealsApi(FakeEntityApi):
    prefix = "deal"
    id_key = "dealID"


class EventCollector:
    """Subscribe to events and record them for assertions."""

    def __init__(self, *events: AppEvent):
        self.received: List[tuple] = []
        self._subs = []
        for ev in events:
            sub = event_bus.subscribe(ev, lambda data, _ev=ev: self.received.append((_ev, data)))
            self._subs.append(sub)

    def count(self, event: AppEvent) -> int:
        return sum(1 for ev, _ in self.received if ev == event)

    def payloads(self, event: AppEvent) -> List[Any]:
        return [data for ev, data in self.received if ev == event]

    def cleanup(self):
        for sub in self._subs:
            sub.unsubscribe()


# ---------------------------------------------------------------------------
# Sample payloads, in the backend's field names
# ---------------------------------------------------------------------------

PROJECT_ID = "proj-1"


def task_payload(task_id: str, order: int, **extra: Any) -> Dict[str, Any]:
    return {
        "taskID": task_id,
        "title": extra.pop("title", f"Task {task_id}"),
        "projectID": PROJECT_ID,
        "status": "todo",
        "order": order,
        **extra,
    }


def sample_tasks() -> List[Dict[str, Any]]:
    return [
        task_payload("t1", 1, phaseID="ph-1", status="todo", title="Write brief"),
        task_payload("t2", 2, phaseID="ph-1", status="in-progress", title="Design mockups"),
        task_payload("t3", 3, phaseID="ph-2", status="todo", title="Build API"),
        task_payload("t4", 4, phaseID="ph-2", status="done", title="Deploy"),
    ]


def sample_phases() -> List[Dict[str, Any]]:
    return [
        {"phaseID": "ph-1", "projectID": PROJECT_ID, "name": "Strategy", "color": "#0394ff", "order": 1},
        {"phaseID": "ph-2", "projectID": PROJECT_ID, "name": "Build", "color": "#7c66d9", "order": 2},
    ]


def sample_deals() -> List[Dict[str, Any]]:
    return [
        {"dealID": "d1", "dealName": "ERP rollout", "dealValue": 1000, "stage": "Lead",
         "customerName": "Acme", "probability": 20},
        {"dealID": "d2", "dealName": "CRM licences", "dealValue": 500, "stage": "Won",
         "customerName": "Globex", "probability": 100},
        {"dealID": "d3", "dealName": "Support plan", "dealValue": 250, "stage": "negotiation",
         "customerName": "Acme", "probability": 60},
        {"dealID": "d4", "dealName": "Data migration", "dealValue": 750, "stage": "closed_won",
         "customerName": "Initech", "probability": 100},
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

async def _reset_database() -> None:
    await db.close()
    db._initialized = False
    db._conn_lock = None
    db._init_lock = None


@pytest.fixture(autouse=True)
def clean_singletons():
    """Fresh event bus, registry and in-memory database path per test."""
    event_bus.clear()
    registry.clear()
    db_module.DB_PATH = Path(":memory:")
    # Locks belong to the previous test's event loop
    db._conn_lock = None
    db._init_lock = None
    yield
    event_bus.clear()
    registry.clear()


@pytest_asyncio.fixture
async def storage():
    """The module-level db, pointed at a fresh in-memory database."""
    await _reset_database()
    await db.init_db()
    yield db
    await _reset_database()


@pytest.fixture
def tasks_api() -> FakeTasksApi:
    return FakeTasksApi(sample_tasks())


@pytest.fixture
def phases_api() -> FakePhasesApi:
    return FakePhasesApi(sample_phases())


@pytest.fixture
def deals_api() -> FakeDealsApi:
    return FakeDealsApi(sample_deals())


@pytest_asyncio.fixture
async def board(storage, tasks_api, phases_api) -> BoardStore:
    """BoardStore with PROJECT_ID loaded from the fakes."""
    store = BoardStore(tasks_api, phases_api, BoardState())
    await store.load_project(PROJECT_ID)
    tasks_api.calls.clear()
    phases_api.calls.clear()
    return store


@pytest_asyncio.fixture
async def deal_store(storage, deals_api) -> DealStore:
    store = DealStore(deals_api)
    await store.load()
    deals_api.calls.clear()
    return store


@pytest_asyncio.fixture
async def preferences(storage) -> PreferencesService:
    prefs = PreferencesService()
    await prefs.initialize()
    return prefs


@pytest.fixture
def collector():
    events = EventCollector(*AppEvent)
    yield events
    events.cleanup()
