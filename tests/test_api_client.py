"""Tests for the REST client, against httpx.MockTransport."""
import json

import httpx
import pytest

from services.api_client import ApiClient, ApiError, PhasesApi, TasksApi

BASE = "http://backend.test/api"


def make_client(handler, token=None) -> ApiClient:
    transport = httpx.MockTransport(handler)
    return ApiClient(base_url=BASE, token=token, client=httpx.AsyncClient(transport=transport))


def envelope(data=None, success=True, status=200, **extra):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"success": success, "data": data, **extra})
    return handler


class TestEnvelope:
    async def test_returns_data(self):
        client = make_client(envelope({"taskID": 1}))
        assert await client.get("/tasks/1") == {"taskID": 1}
        await client.close()

    async def test_success_false_raises_with_server_message(self):
        client = make_client(envelope(success=False, error="Task is locked"))
        with pytest.raises(ApiError) as exc:
            await client.put("/tasks/1", {"status": "done"})
        assert str(exc.value) == "Task is locked"
        await client.close()

    async def test_non_2xx_carries_status(self):
        client = make_client(envelope(success=False, status=404, message="Not found"))
        with pytest.raises(ApiError) as exc:
            await client.get("/tasks/9")
        assert exc.value.status_code == 404
        assert exc.value.message == "Not found"
        await client.close()

    async def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad gateway</html>")

        client = make_client(handler)
        with pytest.raises(ApiError) as exc:
            await client.get("/tasks")
        assert str(exc.value) == "Request failed (502)"
        await client.close()

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        client = make_client(handler)
        with pytest.raises(ApiError, match="Request timeout"):
            await client.get("/tasks")
        await client.close()

    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(ApiError, match="Network error"):
            await client.get("/tasks")
        await client.close()


class TestRequests:
    async def test_bearer_token_and_json_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": {"taskID": 5, "status": "done"}})

        tasks = TasksApi(make_client(handler, token="secret"))
        await tasks.update("5", {"status": "done"})
        assert seen == {
            "auth": "Bearer secret",
            "method": "PUT",
            "url": f"{BASE}/tasks/5",
            "body": {"status": "done"},
        }

    async def test_no_token_no_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"success": True, "data": []})

        await TasksApi(make_client(handler)).get_all()
        assert seen["auth"] is None

    async def test_null_list_is_empty(self):
        tasks = TasksApi(make_client(envelope(None)))
        assert await tasks.get_by_project("p1") == []

    async def test_empty_update_response_raises(self):
        tasks = TasksApi(make_client(envelope(None)))
        with pytest.raises(ApiError, match="Failed to update task"):
            await tasks.update("1", {"name": "x"})

    async def test_phase_reorder_endpoint(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": None})

        await PhasesApi(make_client(handler)).reorder("p1", ["b", "a"])
        assert seen["url"] == f"{BASE}/phases/project/p1/reorder"
        assert seen["body"] == {"projectID": "p1", "phaseIDs": ["b", "a"]}
