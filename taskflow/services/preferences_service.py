import logging
from typing import Any, Callable, Dict, List, Optional

from config import (
    DEFAULT_GROUP_BY,
    DEFAULT_VIEW,
    DEFAULT_VISIBLE_VIEWS,
    DIALOG_GEOMETRY_KEY_PREFIX,
    STORAGE_KEYS,
    GroupBy,
    ViewType,
)
from database import db, DatabaseError
from events import AppEvent, event_bus

logger = logging.getLogger(__name__)


def _views(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    known = {v.value for v in ViewType}
    views = [v for v in value if isinstance(v, str) and v in known]
    return views or None


def _enum(enum_cls) -> Callable[[Any], Any]:
    def parse(value: Any):
        try:
            return enum_cls(value)
        except ValueError:
            return None
    return parse


def _bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _bounds(value: Any) -> Optional[Dict[str, float]]:
    if not isinstance(value, dict):
        return None
    try:
        return {k: float(value[k]) for k in ("x", "y", "width", "height")}
    except (KeyError, TypeError, ValueError):
        return None


class PreferencesService:
    """UI preferences persisted in local storage.

    Lifecycle is explicit: a view calls initialize() when it mounts and
    teardown() when it goes away. Every setter writes through immediately.
    Stored values that are missing or no longer make sense fall back to
    defaults; a failed write is logged and the in-memory value is kept.
    """

    def __init__(self) -> None:
        self.visible_views: List[str] = list(DEFAULT_VISIBLE_VIEWS)
        self.sidebar_collapsed: bool = False
        self.active_view: ViewType = DEFAULT_VIEW
        self.group_by: GroupBy = DEFAULT_GROUP_BY
        self._dialog_bounds: Dict[str, Dict[str, float]] = {}
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    async def _read(self, key: str, parse: Callable[[Any], Any], default: Any) -> Any:
        raw = await db.get_value(key)
        if raw is None:
            return default
        value = parse(raw)
        if value is None:
            logger.warning(f"Ignoring unusable stored preference {key}={raw!r}")
            return default
        return value

    async def _write(self, key: str, value: Any) -> None:
        if not self._attached:
            logger.debug(f"Preferences detached, not persisting {key}")
            return
        try:
            await db.set_value(key, value)
        except DatabaseError as e:
            logger.error(f"Could not persist preference {key}: {e}")
        event_bus.emit(AppEvent.PREFERENCES_CHANGED, key)

    async def initialize(self) -> None:
        """Load every preference from storage and start writing through."""
        self.visible_views = await self._read(
            STORAGE_KEYS["VISIBLE_VIEWS"], _views, list(DEFAULT_VISIBLE_VIEWS)
        )
        self.sidebar_collapsed = await self._read(
            STORAGE_KEYS["SIDEBAR_COLLAPSED"], _bool, False
        )
        self.active_view = await self._read(
            STORAGE_KEYS["ACTIVE_VIEW"], _enum(ViewType), DEFAULT_VIEW
        )
        self.group_by = await self._read(
            STORAGE_KEYS["GROUP_BY"], _enum(GroupBy), DEFAULT_GROUP_BY
        )
        self._attached = True

    async def teardown(self) -> None:
        """Flush current values and detach."""
        if not self._attached:
            return
        await self._write(STORAGE_KEYS["VISIBLE_VIEWS"], self.visible_views)
        await self._write(STORAGE_KEYS["SIDEBAR_COLLAPSED"], self.sidebar_collapsed)
        await self._write(STORAGE_KEYS["ACTIVE_VIEW"], self.active_view.value)
        await self._write(STORAGE_KEYS["GROUP_BY"], self.group_by.value)
        for name, bounds in self._dialog_bounds.items():
            await self._write(f"{DIALOG_GEOMETRY_KEY_PREFIX}{name}", bounds)
        self._attached = False

    async def set_sidebar_collapsed(self, collapsed: bool) -> None:
        self.sidebar_collapsed = collapsed
        await self._write(STORAGE_KEYS["SIDEBAR_COLLAPSED"], collapsed)

    async def set_active_view(self, view: ViewType) -> None:
        self.active_view = view
        await self._write(STORAGE_KEYS["ACTIVE_VIEW"], view.value)

    async def set_group_by(self, group_by: GroupBy) -> None:
        self.group_by = group_by
        await self._write(STORAGE_KEYS["GROUP_BY"], group_by.value)

    async def add_view(self, view: ViewType) -> None:
        if view.value in self.visible_views:
            return
        self.visible_views = self.visible_views + [view.value]
        await self._write(STORAGE_KEYS["VISIBLE_VIEWS"], self.visible_views)

    async def remove_view(self, view: ViewType) -> None:
        """Hide a view tab. The last visible view cannot be removed."""
        if view.value not in self.visible_views or len(self.visible_views) == 1:
            return
        self.visible_views = [v for v in self.visible_views if v != view.value]
        if self.active_view == view:
            self.active_view = ViewType(self.visible_views[0])
            await self._write(STORAGE_KEYS["ACTIVE_VIEW"], self.active_view.value)
        await self._write(STORAGE_KEYS["VISIBLE_VIEWS"], self.visible_views)

    async def get_dialog_bounds(self, name: str) -> Optional[Dict[str, float]]:
        """Saved position and size of a floating dialog, if any."""
        if name not in self._dialog_bounds:
            bounds = await self._read(f"{DIALOG_GEOMETRY_KEY_PREFIX}{name}", _bounds, None)
            if bounds is None:
                return None
            self._dialog_bounds[name] = bounds
        return dict(self._dialog_bounds[name])

    async def set_dialog_bounds(self, name: str, bounds: Dict[str, float]) -> None:
        self._dialog_bounds[name] = dict(bounds)
        await self._write(f"{DIALOG_GEOMETRY_KEY_PREFIX}{name}", self._dialog_bounds[name])
