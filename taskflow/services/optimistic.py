"""Apply locally, persist remotely, revert on failure.

The local change runs synchronously before the first ``await`` so the UI
sees it immediately. If the remote write raises ``ApiError`` the revert runs,
again synchronously, and the error is handed to ``on_error``. Nothing is
retried; the user can repeat the action.
"""
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple

from services.api_client import ApiError

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[ApiError], None]


async def run_optimistic(
    apply: Callable[[], None],
    persist: Callable[[], Awaitable[Any]],
    revert: Callable[[], None],
    on_error: Optional[ErrorHandler] = None,
) -> bool:
    """Run one optimistic mutation.

    Returns:
        True when the remote write succeeded, False when it was reverted.
    """
    apply()
    try:
        await persist()
    except ApiError as e:
        revert()
        logger.warning(f"Remote write failed, local change reverted: {e}")
        if on_error is not None:
            on_error(e)
        return False
    return True


async def optimistic_set(
    getter: Callable[[], Any],
    setter: Callable[[Any], None],
    value: Any,
    persist: Callable[[], Awaitable[Any]],
    on_error: Optional[ErrorHandler] = None,
) -> bool:
    """Set a value through ``setter``, restoring the ``getter`` value on failure."""
    old_value = getter()
    return await run_optimistic(
        apply=lambda: setter(value),
        persist=persist,
        revert=lambda: setter(old_value),
        on_error=on_error,
    )


def attr_accessors(obj: Any, name: str) -> Tuple[Callable[[], Any], Callable[[Any], None]]:
    """Getter/setter pair for one attribute of obj."""
    return (lambda: getattr(obj, name)), (lambda value: setattr(obj, name, value))
