"""
Service lookup shared by the views.

bootstrap() registers the stores once; ui/ code asks for them by key instead
of having them threaded through every constructor.

Usage:
    from registry import registry, Services

    registry.register(Services.BOARD_STORE, store)
    store = registry.require(Services.BOARD_STORE)
"""
import threading
from enum import Enum
from typing import Any, Dict, Optional


class Services(str, Enum):
    """Registry keys."""
    BOARD_STORE = "board_store"
    PREFERENCES = "preferences"


class ServiceRegistry:
    """Key -> service mapping guarded by a lock."""

    def __init__(self) -> None:
        self._services: Dict[Services, Any] = {}
        self._lock = threading.Lock()

    def register(self, key: Services, service: Any) -> Any:
        """Store service under key, replacing any previous one. Returns service."""
        with self._lock:
            self._services[key] = service
        return service

    def get(self, key: Services) -> Optional[Any]:
        with self._lock:
            return self._services.get(key)

    def require(self, key: Services) -> Any:
        """Like get(), for callers that cannot work without the service.

        Raises:
            KeyError: If nothing is registered under key.
        """
        service = self.get(key)
        if service is None:
            raise KeyError(f"Service '{key.value}' not registered, run core.bootstrap() first")
        return service

    def clear(self) -> None:
        with self._lock:
            self._services.clear()


registry = ServiceRegistry()
