from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, Any, Optional
import inspect
import itertools
import logging
import weakref

from config import NotificationLevel

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class AppEvent(Enum):
    """Events emitted by the stores and preferences service."""
    TASKS_LOADED = auto()
    TASK_CREATED = auto()
    TASK_UPDATED = auto()
    TASK_REVERTED = auto()
    TASKS_REORDERED = auto()
    TASK_DELETED = auto()
    PHASE_CREATED = auto()
    PHASE_DELETED = auto()
    DEALS_LOADED = auto()
    DEAL_UPDATED = auto()
    DEAL_DELETED = auto()
    PREFERENCES_CHANGED = auto()
    NOTIFY = auto()


@dataclass
class Notification:
    """Payload of AppEvent.NOTIFY, rendered as a transient toast."""
    message: str
    level: NotificationLevel = NotificationLevel.INFO

    @classmethod
    def error(cls, message: str) -> "Notification":
        return cls(message, NotificationLevel.ERROR)


def _needs_strong_ref(callback: Listener) -> bool:
    """Lambdas and closures have no other owner and would die immediately."""
    if inspect.ismethod(callback):
        return False
    if getattr(callback, "__name__", "") == "<lambda>":
        return True
    return getattr(callback, "__closure__", None) is not None


def _weak(callback: Listener, on_dead: Callable[[Any], None]) -> Callable[[], Optional[Listener]]:
    if inspect.ismethod(callback):
        return weakref.WeakMethod(callback, on_dead)
    try:
        return weakref.ref(callback, on_dead)
    except TypeError:
        # Builtins and partials without __weakref__
        return lambda: callback


class Subscription:
    """Handle returned by EventBus.subscribe().

    When the bus holds the listener strongly (lambdas, closures, strong=True)
    this handle is what keeps it alive: store it, and call unsubscribe()
    when the subscriber goes away.
    """

    def __init__(self, bus: "EventBus", event: AppEvent, key: int, keep: Optional[Listener] = None):
        self._bus = bus
        self._event = event
        self._key = key
        self._keep = keep

    @property
    def active(self) -> bool:
        return self._key in self._bus._listeners.get(self._event, {})

    def unsubscribe(self) -> None:
        self._bus._listeners.get(self._event, {}).pop(self._key, None)
        self._keep = None


class EventBus:
    """Process-wide publish/subscribe hub.

    Listeners are held weakly, so a view that goes away without unsubscribing
    simply stops receiving events. A failing listener is logged and never
    breaks the emitter.
    """

    def __init__(self) -> None:
        self._listeners: Dict[AppEvent, Dict[int, Callable[[], Optional[Listener]]]] = {}
        self._keys = itertools.count()

    def subscribe(
        self,
        event: AppEvent,
        callback: Listener,
        strong: bool = False,
    ) -> Subscription:
        """Subscribe a callback to an event.

        Args:
            event: The event to listen for.
            callback: Called with the event payload.
            strong: Keep the callback alive through the returned Subscription.
                Forced on for lambdas and closures.

        Returns:
            Subscription used to detach the listener.
        """
        key = next(self._keys)
        listeners = self._listeners.setdefault(event, {})

        def on_dead(_ref) -> None:
            logger.debug(f"EventBus: listener for {event.name} was garbage collected")
            listeners.pop(key, None)

        listeners[key] = _weak(callback, on_dead)
        keep = callback if strong or _needs_strong_ref(callback) else None
        return Subscription(self, event, key, keep)

    def emit(self, event: AppEvent, data: Any = None) -> None:
        """Deliver data to every live listener of event."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        for key, ref in list(listeners.items()):
            callback = ref()
            if callback is None:
                listeners.pop(key, None)
                continue
            try:
                callback(data)
            except Exception:
                logger.exception(f"Error in event handler for {event.name}")

    def clear(self) -> None:
        self._listeners.clear()


event_bus = EventBus()
