"""REST client for the TaskFlow backend.

Every endpoint answers with the envelope ``{success, data, error, message}``.
``ApiClient`` unwraps it and turns every failure mode (transport error,
timeout, non-2xx status, ``success: false``) into ``ApiError`` with a message
fit for a toast. Nothing here retries.

Entity clients return raw payload dicts; callers pass them through
``models.adapters`` before use.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from config import API_BASE_URL, API_TIMEOUT_SECONDS, API_TOKEN

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Remote operation failed. ``str(e)`` is the user-facing message."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ApiClient:
    """Thin async wrapper over ``httpx.AsyncClient``.

    The underlying client is created lazily so the object can be built
    outside a running event loop. Tests inject their own client (usually one
    with ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = API_TIMEOUT_SECONDS,
        token: Optional[str] = API_TOKEN,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token = token
        self._client = client

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(self, method: str, endpoint: str, body: Any = None) -> Any:
        """Send a request and return the envelope's ``data`` field.

        Raises:
            ApiError: On any transport, HTTP or envelope failure.
        """
        url = f"{self.base_url}{endpoint}"
        try:
            resp = await self._get_client().request(
                method, url, json=body, headers=self._headers()
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {endpoint} timed out: {e}")
            raise ApiError("Request timeout") from e
        except httpx.HTTPError as e:
            logger.warning(f"{method} {endpoint} failed: {e}")
            raise ApiError(f"Network error: {e}") from e

        try:
            envelope = resp.json()
        except ValueError:
            envelope = {}
        if not isinstance(envelope, dict):
            envelope = {"success": resp.is_success, "data": envelope}

        if not resp.is_success:
            message = envelope.get("error") or envelope.get("message") or f"Request failed ({resp.status_code})"
            raise ApiError(message, status_code=resp.status_code)
        if envelope.get("success") is False:
            message = envelope.get("error") or envelope.get("message") or "Request failed"
            raise ApiError(message, status_code=resp.status_code)
        return envelope.get("data")

    async def get(self, endpoint: str) -> Any:
        return await self.request("GET", endpoint)

    async def post(self, endpoint: str, body: Any = None) -> Any:
        return await self.request("POST", endpoint, body)

    async def put(self, endpoint: str, body: Any = None) -> Any:
        return await self.request("PUT", endpoint, body)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)


class EntityApi:
    """CRUD endpoints for one resource under ``/<resource>``."""
    resource = ""
    label = "item"

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def _list(self, endpoint: str) -> List[Dict[str, Any]]:
        return await self.client.get(endpoint) or []

    def _one(self, data: Any, failure: str) -> Dict[str, Any]:
        if not data:
            raise ApiError(failure)
        return data

    async def get_all(self) -> List[Dict[str, Any]]:
        return await self._list(f"/{self.resource}")

    async def get_by_id(self, item_id: str) -> Dict[str, Any]:
        data = await self.client.get(f"/{self.resource}/{item_id}")
        return self._one(data, f"{self.label.capitalize()} not found")

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        created = await self.client.post(f"/{self.resource}", data)
        return self._one(created, f"Failed to create {self.label}")

    async def update(self, item_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Send a partial update. Only the given fields are transmitted."""
        updated = await self.client.put(f"/{self.resource}/{item_id}", fields)
        return self._one(updated, f"Failed to update {self.label}")

    async def delete(self, item_id: str) -> None:
        await self.client.delete(f"/{self.resource}/{item_id}")


class TasksApi(EntityApi):
    resource = "tasks"
    label = "task"

    async def get_by_project(self, project_id: str) -> List[Dict[str, Any]]:
        return await self._list(f"/tasks/project/{project_id}")


class PhasesApi(EntityApi):
    resource = "phases"
    label = "phase"

    async def get_by_project(self, project_id: str) -> List[Dict[str, Any]]:
        return await self._list(f"/phases/project/{project_id}")

    async def reorder(self, project_id: str, phase_ids: List[str]) -> None:
        await self.client.post(
            f"/phases/project/{project_id}/reorder",
            {"projectID": project_id, "phaseIDs": phase_ids},
        )


class DealsApi(EntityApi):
    resource = "deals"
    label = "deal"

    async def get_by_customer(self, customer_id: str) -> List[Dict[str, Any]]:
        return await self._list(f"/deals/customer/{customer_id}")


class ProjectsApi(EntityApi):
    resource = "projects"
    label = "project"


class CustomersApi(EntityApi):
    resource = "customers"
    label = "customer"


class ContactsApi(EntityApi):
    resource = "contacts"
    label = "contact"

    async def get_by_customer(self, customer_id: str) -> List[Dict[str, Any]]:
        return await self._list(f"/contacts/customer/{customer_id}")


class UsersApi(EntityApi):
    resource = "users"
    label = "user"
