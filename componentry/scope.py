"""
Scope

Custom scopes for components that are neither singletons nor prototypes.
A scope is registered under a name with ``container.register_scope()``,
and definitions select it with ``scope="<name>"``.

- SimpleScope: explicitly opened and closed (for example one request);
  instances are shared within the scope and destroyed when it is closed
- ThreadScope: one instance per thread
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from .exceptions import ScopeNotActiveError

logger = logging.getLogger(__name__)


class Scope(ABC):
    """Strategy storing the instances of one custom scope."""

    @abstractmethod
    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        """Return the scoped instance, creating it with ``object_factory`` if absent."""
        pass

    @abstractmethod
    def remove(self, name: str) -> Optional[Any]:
        """Remove and return the scoped instance, if present."""
        pass

    @abstractmethod
    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        """Register a callback to run when the scoped instance is destroyed."""
        pass

    def get_conversation_id(self) -> Optional[str]:
        return None


class SimpleScope(Scope):
    """Runtime scope that is opened and closed explicitly.

    Attributes:
        scope_id: Unique identifier for this scope instance

    Example::

        request_scope = SimpleScope("req-123")
        container.register_scope("request", request_scope)

        with request_scope:
            ctx = container.get("request_context")   # created and cached
            ctx2 = container.get("request_context")  # same instance
        # Scope closed, destruction callbacks run
    """

    def __init__(self, scope_id: Optional[str] = None):
        self.scope_id = scope_id or uuid.uuid4().hex
        self._instances: Dict[str, Any] = {}
        self._callbacks: Dict[str, Callable[[], None]] = {}
        self._lock = threading.RLock()
        self._pending = threading.local()
        self._closed = False

    def _ensure_not_closed(self) -> None:
        if self._closed:
            raise ScopeNotActiveError(
                f"Scope '{self.scope_id}' has been closed. "
                "Cannot create components in a closed scope."
            )

    def _pending_callbacks(self) -> Dict[str, Optional[Callable[[], None]]]:
        pending = getattr(self._pending, 'callbacks', None)
        if pending is None:
            pending = {}
            self._pending.callbacks = pending
        return pending

    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        """Return the scoped instance, creating it outside the scope lock.

        When two threads create the same name concurrently, the first
        stored instance wins and the other one is discarded together with
        its destruction callback.
        """
        self._ensure_not_closed()
        with self._lock:
            if name in self._instances:
                return self._instances[name]

        pending = self._pending_callbacks()
        pending[name] = None
        try:
            instance = object_factory()
            callback = pending.get(name)
        finally:
            pending.pop(name, None)

        with self._lock:
            self._ensure_not_closed()
            if name in self._instances:
                logger.debug(
                    f"Discarding concurrently created instance of '{name}' in scope '{self.scope_id}'"
                )
                return self._instances[name]
            self._instances[name] = instance
            if callback is not None:
                self._callbacks[name] = callback
            return instance

    def remove(self, name: str) -> Optional[Any]:
        with self._lock:
            self._callbacks.pop(name, None)
            return self._instances.pop(name, None)

    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        pending = self._pending_callbacks()
        if name in pending:
            pending[name] = callback
            return
        with self._lock:
            self._callbacks[name] = callback

    def get_conversation_id(self) -> Optional[str]:
        return self.scope_id

    def close(self) -> None:
        """Close this scope and destroy its instances, newest first.

        After closing, the scope cannot be used to create components.
        This method is idempotent.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            callbacks = list(self._callbacks.items())
            self._callbacks.clear()
            self._instances.clear()

        for name, callback in reversed(callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(
                    f"Destruction callback for '{name}' in scope '{self.scope_id}' "
                    f"threw an exception: {e}",
                    exc_info=True,
                )

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self) -> 'SimpleScope':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class ThreadScope(Scope):
    """One instance per thread.

    Destruction callbacks are not supported: thread-scoped instances are
    released with their thread.
    """

    def __init__(self):
        self._local = threading.local()

    def _instances(self) -> Dict[str, Any]:
        instances = getattr(self._local, 'instances', None)
        if instances is None:
            instances = {}
            self._local.instances = instances
        return instances

    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        instances = self._instances()
        if name not in instances:
            instances[name] = object_factory()
        return instances[name]

    def remove(self, name: str) -> Optional[Any]:
        return self._instances().pop(name, None)

    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        logger.debug(f"ThreadScope does not support destruction callbacks; ignoring callback for '{name}'")

    def get_conversation_id(self) -> Optional[str]:
        return threading.current_thread().name
