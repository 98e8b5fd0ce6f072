"""Tests for the optimistic mutation helper."""
import pytest

from services.api_client import ApiError
from services.optimistic import attr_accessors, optimistic_set, run_optimistic


class Record:
    def __init__(self):
        self.value = "old"


async def succeed():
    return None


async def fail():
    raise ApiError("rejected")


class TestOptimisticSet:
    async def test_success_keeps_new_value(self):
        record = Record()
        getter, setter = attr_accessors(record, "value")
        assert await optimistic_set(getter, setter, "new", succeed) is True
        assert record.value == "new"

    async def test_failure_round_trips_to_old_value(self):
        record = Record()
        getter, setter = attr_accessors(record, "value")
        errors = []
        assert await optimistic_set(getter, setter, "new", fail, errors.append) is False
        assert record.value == "old"
        assert [str(e) for e in errors] == ["rejected"]

    async def test_applied_before_persist_runs(self):
        record = Record()
        getter, setter = attr_accessors(record, "value")
        seen = []

        async def persist():
            seen.append(record.value)

        await optimistic_set(getter, setter, "new", persist)
        assert seen == ["new"]


class TestRunOptimistic:
    async def test_non_api_errors_propagate(self):
        log = []

        async def broken():
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await run_optimistic(lambda: log.append("apply"), broken, lambda: log.append("revert"))
        assert log == ["apply"]

    async def test_revert_runs_once_on_failure(self):
        log = []
        ok = await run_optimistic(lambda: log.append("apply"), fail, lambda: log.append("revert"))
        assert ok is False
        assert log == ["apply", "revert"]
