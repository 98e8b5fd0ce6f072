"""Headless bootstrap for the TaskFlow board services.

Builds the service layer without any Flet dependency, suitable for scripts
and tests.

Usage:
    from core import bootstrap, shutdown

    svc = await bootstrap(db_path=Path("board.db"))
    await svc.board.load_project("proj-1")
    await svc.board.update_field("task-1", "status", TaskStatus.DONE)
    await shutdown(svc)
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from database import db, configure_db_path
from models.entities import BoardState
from registry import registry, Services
from services.api_client import (
    ApiClient,
    ContactsApi,
    CustomersApi,
    DealsApi,
    PhasesApi,
    ProjectsApi,
    TasksApi,
    UsersApi,
)
from services.board_store import BoardStore
from services.deal_store import DealStore
from services.preferences_service import PreferencesService
from services.stats import StatsService


@dataclass
class ApiClients:
    """One client per backend resource, sharing a single HTTP client."""
    http: ApiClient
    tasks: TasksApi
    phases: PhasesApi
    deals: DealsApi
    projects: ProjectsApi
    customers: CustomersApi
    contacts: ContactsApi
    users: UsersApi

    @classmethod
    def create(cls, http: ApiClient) -> "ApiClients":
        return cls(
            http=http,
            tasks=TasksApi(http),
            phases=PhasesApi(http),
            deals=DealsApi(http),
            projects=ProjectsApi(http),
            customers=CustomersApi(http),
            contacts=ContactsApi(http),
            users=UsersApi(http),
        )


@dataclass
class ServiceContainer:
    """Container holding all initialized services for headless use."""
    api: ApiClients
    board: BoardStore
    deals: DealStore
    preferences: PreferencesService
    stats: StatsService


async def bootstrap(
    db_path: Optional[Path] = None,
    api_client: Optional[ApiClient] = None,
) -> ServiceContainer:
    """Initialize storage, API clients, stores and preferences.

    Args:
        db_path: Custom database path. Uses the default ("taskflow.db") if None.
        api_client: Pre-built HTTP client, e.g. one with a mock transport.

    Returns:
        ServiceContainer with all services ready to use.
    """
    if db_path is not None:
        configure_db_path(db_path)
    await db.init_db()

    api = ApiClients.create(api_client or ApiClient())
    preferences = PreferencesService()
    await preferences.initialize()

    stats = StatsService()
    board = BoardStore(api.tasks, api.phases, BoardState(group_by=preferences.group_by))
    deals = DealStore(api.deals, stats)

    registry.register(Services.BOARD_STORE, board)
    registry.register(Services.PREFERENCES, preferences)

    return ServiceContainer(
        api=api,
        board=board,
        deals=deals,
        preferences=preferences,
        stats=stats,
    )


async def shutdown(services: Optional[ServiceContainer] = None) -> None:
    """Flush preferences, close the HTTP client and the database."""
    if services is not None:
        await services.preferences.teardown()
        await services.api.http.close()
    await db.close()
    registry.clear()
