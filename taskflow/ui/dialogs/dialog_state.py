from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, TYPE_CHECKING

from config import (
    DIALOG_DEFAULT_HEIGHT,
    DIALOG_DEFAULT_WIDTH,
    DIALOG_MIN_HEIGHT,
    DIALOG_MIN_WIDTH,
)

if TYPE_CHECKING:
    from services.preferences_service import PreferencesService

RESIZE_DIRECTIONS = ("n", "s", "e", "w", "ne", "nw", "se", "sw")


@dataclass
class _Interaction:
    """Pointer and bounds captured when a drag or resize begins."""
    pointer_x: float
    pointer_y: float
    x: float
    y: float
    width: float
    height: float
    direction: Optional[str] = None


@dataclass
class DialogGeometry:
    """Position and size of a floating, draggable, resizable dialog.

    Drag/resize state exists only between begin_* and end_interaction();
    pointer moves outside an interaction are ignored.
    """
    x: float = 0.0
    y: float = 0.0
    width: float = DIALOG_DEFAULT_WIDTH
    height: float = DIALOG_DEFAULT_HEIGHT
    min_width: float = DIALOG_MIN_WIDTH
    min_height: float = DIALOG_MIN_HEIGHT
    _active: Optional[_Interaction] = field(default=None, repr=False, compare=False)

    @classmethod
    def centered(cls, viewport_width: float, viewport_height: float) -> "DialogGeometry":
        return cls(
            x=(viewport_width - DIALOG_DEFAULT_WIDTH) / 2,
            y=(viewport_height - DIALOG_DEFAULT_HEIGHT) / 2,
        )

    @classmethod
    def from_dict(cls, d: Dict[str, float]) -> "DialogGeometry":
        geometry = cls(x=d["x"], y=d["y"], width=d["width"], height=d["height"])
        geometry.width = max(geometry.min_width, geometry.width)
        geometry.height = max(geometry.min_height, geometry.height)
        return geometry

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @property
    def is_dragging(self) -> bool:
        return self._active is not None and self._active.direction is None

    @property
    def is_resizing(self) -> bool:
        return self._active is not None and self._active.direction is not None

    def _capture(self, pointer: Tuple[float, float], direction: Optional[str]) -> None:
        self._active = _Interaction(
            pointer_x=pointer[0], pointer_y=pointer[1],
            x=self.x, y=self.y, width=self.width, height=self.height,
            direction=direction,
        )

    def begin_drag(self, pointer: Tuple[float, float]) -> None:
        self._capture(pointer, None)

    def begin_resize(self, pointer: Tuple[float, float], direction: str) -> None:
        if direction not in RESIZE_DIRECTIONS:
            raise ValueError(f"Unknown resize direction '{direction}'")
        self._capture(pointer, direction)

    def move_to(self, pointer: Tuple[float, float]) -> None:
        """Apply a pointer move to the interaction in progress."""
        start = self._active
        if start is None:
            return
        dx = pointer[0] - start.pointer_x
        dy = pointer[1] - start.pointer_y

        if start.direction is None:
            self.x = start.x + dx
            self.y = start.y + dy
            return

        # West and north edges pin the opposite edge, so the origin stops
        # moving once the size hits its minimum.
        if "e" in start.direction:
            self.width = max(self.min_width, start.width + dx)
        elif "w" in start.direction:
            self.width = max(self.min_width, start.width - dx)
            self.x = start.x + (start.width - self.width)
        if "s" in start.direction:
            self.height = max(self.min_height, start.height + dy)
        elif "n" in start.direction:
            self.height = max(self.min_height, start.height - dy)
            self.y = start.y + (start.height - self.height)

    def end_interaction(self) -> bool:
        """Finish the drag/resize. Returns True if one was in progress."""
        was_active = self._active is not None
        self._active = None
        return was_active


async def load_geometry(
    preferences: "PreferencesService",
    name: str,
    viewport_width: float,
    viewport_height: float,
) -> DialogGeometry:
    """Saved geometry for a dialog, or a centered default."""
    bounds = await preferences.get_dialog_bounds(name)
    if bounds is None:
        return DialogGeometry.centered(viewport_width, viewport_height)
    return DialogGeometry.from_dict(bounds)


async def save_geometry(preferences: "PreferencesService", name: str, geometry: DialogGeometry) -> None:
    await preferences.set_dialog_bounds(name, geometry.to_dict())
