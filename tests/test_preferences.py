"""Tests for persisted UI preferences."""
from config import GroupBy, STORAGE_KEYS, ViewType
from database import db
from events import AppEvent
from services.preferences_service import PreferencesService


async def write_raw(key: str, text: str) -> None:
    """Store text as-is, bypassing JSON encoding."""
    async with db._get_connection() as conn:
        await conn.execute(
            "INSERT OR REPLACE INTO storage (key, value) VALUES (?, ?)", (key, text)
        )
        await conn.commit()


class TestInitialize:
    async def test_defaults_when_storage_empty(self, preferences: PreferencesService):
        assert preferences.group_by == GroupBy.PHASE
        assert preferences.active_view == ViewType.LIST
        assert preferences.sidebar_collapsed is False
        assert preferences.visible_views == [v.value for v in ViewType]
        assert preferences.attached

    async def test_reads_stored_values(self, storage):
        await db.set_value(STORAGE_KEYS["GROUP_BY"], "status")
        await db.set_value(STORAGE_KEYS["SIDEBAR_COLLAPSED"], True)
        await db.set_value(STORAGE_KEYS["VISIBLE_VIEWS"], ["board", "gantt"])
        prefs = PreferencesService()
        await prefs.initialize()
        assert prefs.group_by == GroupBy.STATUS
        assert prefs.sidebar_collapsed is True
        assert prefs.visible_views == ["board", "gantt"]

    async def test_corrupt_json_falls_back_to_default(self, storage):
        await write_raw(STORAGE_KEYS["SIDEBAR_COLLAPSED"], "{not json")
        await write_raw(STORAGE_KEYS["GROUP_BY"], '"sideways"')
        prefs = PreferencesService()
        await prefs.initialize()
        assert prefs.sidebar_collapsed is False
        assert prefs.group_by == GroupBy.PHASE

    async def test_unknown_views_are_dropped(self, storage):
        await db.set_value(STORAGE_KEYS["VISIBLE_VIEWS"], ["board", "timeline", 3])
        prefs = PreferencesService()
        await prefs.initialize()
        assert prefs.visible_views == ["board"]


class TestWriteThrough:
    async def test_setters_persist_immediately(self, preferences: PreferencesService, collector):
        await preferences.set_group_by(GroupBy.ASSIGNEE)
        await preferences.set_sidebar_collapsed(True)
        assert await db.get_value(STORAGE_KEYS["GROUP_BY"]) == "assignee"
        assert await db.get_value(STORAGE_KEYS["SIDEBAR_COLLAPSED"]) is True
        assert collector.count(AppEvent.PREFERENCES_CHANGED) == 2

    async def test_detached_service_does_not_write(self, storage):
        prefs = PreferencesService()
        await prefs.set_group_by(GroupBy.SPRINT)
        assert prefs.group_by == GroupBy.SPRINT
        assert await db.get_value(STORAGE_KEYS["GROUP_BY"]) is None

    async def test_teardown_flushes_and_detaches(self, preferences: PreferencesService):
        preferences.active_view = ViewType.GANTT
        await preferences.teardown()
        assert not preferences.attached
        assert await db.get_value(STORAGE_KEYS["ACTIVE_VIEW"]) == "gantt"
        await preferences.set_active_view(ViewType.BOARD)
        assert await db.get_value(STORAGE_KEYS["ACTIVE_VIEW"]) == "gantt"


class TestViews:
    async def test_remove_active_view_switches_to_first(self, preferences: PreferencesService):
        await preferences.remove_view(ViewType.LIST)
        assert "list" not in preferences.visible_views
        assert preferences.active_view == ViewType.BOARD

    async def test_last_view_is_kept(self, preferences: PreferencesService):
        for view in list(ViewType)[1:]:
            await preferences.remove_view(view)
        await preferences.remove_view(ViewType.LIST)
        assert preferences.visible_views == ["list"]

    async def test_add_view_once(self, preferences: PreferencesService):
        await preferences.remove_view(ViewType.GANTT)
        await preferences.add_view(ViewType.GANTT)
        await preferences.add_view(ViewType.GANTT)
        assert preferences.visible_views.count("gantt") == 1


class TestDialogBounds:
    async def test_round_trip_through_storage(self, preferences: PreferencesService):
        await preferences.set_dialog_bounds("task-detail", {"x": 10, "y": 20, "width": 1000, "height": 700})
        fresh = PreferencesService()
        await fresh.initialize()
        assert await fresh.get_dialog_bounds("task-detail") == {
            "x": 10.0, "y": 20.0, "width": 1000.0, "height": 700.0,
        }

    async def test_missing_or_malformed_bounds(self, preferences: PreferencesService):
        assert await preferences.get_dialog_bounds("nothing") is None
        await write_raw("taskflow_dialog_geometry:broken", '{"x": 1}')
        assert await preferences.get_dialog_bounds("broken") is None
