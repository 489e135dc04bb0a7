"""
SingletonRegistry

Creation-state registry and three-tier singleton cache:

1. ``_singletons``: fully initialized singletons
2. ``_early_factories``: EarlyReference suppliers registered right after
   raw instantiation, while the singleton is still being populated
3. ``_early_singletons``: early references already produced from tier 2

At most one of tiers 2 and 3 holds a name at any time, and both are
cleared when the finished singleton is added to tier 1.

The registry also records dependency edges between components and the
disposable singletons, and destroys dependents before the components
they depend on.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Set

from .exceptions import CircularWiringError, ContainerClosedError, DuplicateDefinitionError

logger = logging.getLogger(__name__)


class EarlyReference:
    """Deferred supplier of the early reference to a singleton in creation.

    Holds the raw instance and the callback that runs it through the
    early-reference post-processors. The callback runs at most once; its
    result is memoized.
    """

    __slots__ = ('raw_instance', '_supplier', '_resolved', '_value')

    def __init__(self, raw_instance: Any, supplier: Callable[[Any], Any]):
        self.raw_instance = raw_instance
        self._supplier = supplier
        self._resolved = False
        self._value = None

    def get(self) -> Any:
        if not self._resolved:
            self._value = self._supplier(self.raw_instance)
            self._resolved = True
        return self._value


class SingletonRegistry:
    """Shared registry of singleton instances and creation state.

    Singleton creation is serialized by one re-entrant creation lock, held
    for the whole creation of a singleton including the nested creations
    of its dependencies. Finished singletons are read without locking.
    Early references are looked up under the lock, so a thread asking for
    a singleton that another thread is creating blocks until that creation
    is finished.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._singletons: Dict[str, Any] = {}
        self._early_factories: Dict[str, EarlyReference] = {}
        self._early_singletons: Dict[str, Any] = {}
        self._registered: Dict[str, None] = {}
        self._in_creation: Set[str] = set()
        # name -> components depending on it; name -> components it depends on
        self._dependents: Dict[str, Dict[str, None]] = {}
        self._dependencies: Dict[str, Dict[str, None]] = {}
        self._disposables: Dict[str, Any] = {}
        self._destroying = False

    # Tier access

    def register_singleton(self, name: str, instance: Any) -> None:
        """Register an externally created, fully initialized singleton.

        Raises:
            DuplicateDefinitionError: When a singleton of that name exists
        """
        with self._lock:
            if name in self._singletons:
                raise DuplicateDefinitionError(
                    f"Could not register object [{instance!r}] under component name "
                    f"'{name}': there is already a singleton bound to that name"
                )
            self.add_singleton(name, instance)

    def add_singleton(self, name: str, instance: Any) -> None:
        with self._lock:
            self._singletons[name] = instance
            self._early_factories.pop(name, None)
            self._early_singletons.pop(name, None)
            self._registered[name] = None

    def add_early_factory(self, name: str, reference: EarlyReference) -> None:
        with self._lock:
            if name not in self._singletons:
                self._early_factories[name] = reference
                self._early_singletons.pop(name, None)
                self._registered[name] = None

    def get_singleton(self, name: str, allow_early: bool = True) -> Optional[Any]:
        """Return the singleton registered under ``name``, if any.

        While the singleton is in creation, the early reference is returned
        instead: from tier 3, or (if ``allow_early``) produced from tier 2
        and moved to tier 3.
        """
        instance = self._singletons.get(name)
        if instance is None and name in self._in_creation:
            with self._lock:
                instance = self._singletons.get(name)
                if instance is None and name in self._in_creation:
                    instance = self._early_singletons.get(name)
                    if instance is None and allow_early:
                        reference = self._early_factories.get(name)
                        if reference is not None:
                            instance = reference.get()
                            self._early_singletons[name] = instance
                            del self._early_factories[name]
        return instance

    def get_or_create_singleton(self, name: str, factory: Callable[[], Any]) -> Any:
        """Return the singleton, creating it with ``factory`` if necessary.

        A failed creation removes every trace of the partially created
        singleton before the error propagates.
        """
        with self._lock:
            instance = self._singletons.get(name)
            if instance is not None:
                return instance
            if self._destroying:
                raise ContainerClosedError(
                    f"Singleton '{name}' cannot be created while singletons of "
                    f"this container are being destroyed"
                )
            logger.debug(f"Creating shared instance of singleton component '{name}'")
            self.before_singleton_creation(name)
            try:
                instance = factory()
            except Exception:
                self._in_creation.discard(name)
                self.destroy_singleton(name)
                raise
            finally:
                self.after_singleton_creation(name)
            self.add_singleton(name, instance)
            return instance

    def remove_singleton(self, name: str) -> None:
        with self._lock:
            self._singletons.pop(name, None)
            self._early_factories.pop(name, None)
            self._early_singletons.pop(name, None)
            self._registered.pop(name, None)

    def contains_singleton(self, name: str) -> bool:
        return name in self._singletons

    def singleton_names(self) -> List[str]:
        with self._lock:
            return list(self._registered)

    # Creation state

    def before_singleton_creation(self, name: str) -> None:
        if name in self._in_creation:
            raise CircularWiringError(
                name,
                "Requested component is currently in creation: "
                "Is there an unresolvable circular reference?"
            )
        self._in_creation.add(name)

    def after_singleton_creation(self, name: str) -> None:
        self._in_creation.discard(name)

    def is_in_creation(self, name: str) -> bool:
        return name in self._in_creation

    # Dependency edges

    def register_dependent(self, name: str, dependent_name: str) -> None:
        """Record that ``dependent_name`` depends on ``name``."""
        with self._lock:
            self._dependents.setdefault(name, {})[dependent_name] = None
            self._dependencies.setdefault(dependent_name, {})[name] = None

    def is_dependent(self, name: str, dependent_name: str,
                     already_seen: Optional[Set[str]] = None) -> bool:
        """Whether ``dependent_name`` depends on ``name``, directly or transitively."""
        if already_seen is not None and name in already_seen:
            return False
        dependents = self._dependents.get(name)
        if not dependents:
            return False
        if dependent_name in dependents:
            return True
        seen = set(already_seen or ())
        seen.add(name)
        return any(self.is_dependent(d, dependent_name, seen) for d in list(dependents))

    def has_dependents(self, name: str) -> bool:
        return bool(self._dependents.get(name))

    def get_dependents(self, name: str) -> List[str]:
        with self._lock:
            return list(self._dependents.get(name, ()))

    def get_dependencies(self, name: str) -> List[str]:
        with self._lock:
            return list(self._dependencies.get(name, ()))

    # Destruction

    def register_disposable(self, name: str, disposable: Any) -> None:
        """Register an object with a ``destroy()`` method to run on destruction."""
        with self._lock:
            self._disposables[name] = disposable

    def destroy_singletons(self) -> None:
        """Destroy all singletons, in reverse registration order."""
        logger.debug(f"Destroying singletons in {self!r}")
        with self._lock:
            self._destroying = True
            names = list(self._disposables)
        try:
            for name in reversed(names):
                self.destroy_singleton(name)
        finally:
            with self._lock:
                self._dependents.clear()
                self._dependencies.clear()
                self._singletons.clear()
                self._early_factories.clear()
                self._early_singletons.clear()
                self._registered.clear()
                self._destroying = False

    def destroy_singleton(self, name: str) -> None:
        """Destroy one singleton, after all components that depend on it."""
        self.remove_singleton(name)
        with self._lock:
            disposable = self._disposables.pop(name, None)
        self._destroy_component(name, disposable)

    def _destroy_component(self, name: str, disposable: Any) -> None:
        with self._lock:
            dependents = self._dependents.pop(name, {})
        for dependent in dependents:
            self.destroy_singleton(dependent)

        if disposable is not None:
            try:
                disposable.destroy()
            except Exception as e:
                logger.warning(f"Destruction of component '{name}' threw an exception: {e}", exc_info=True)

        with self._lock:
            for key in list(self._dependents):
                remaining = self._dependents[key]
                remaining.pop(name, None)
                if not remaining:
                    del self._dependents[key]
            self._dependencies.pop(name, None)

    def __repr__(self) -> str:
        return f"SingletonRegistry(singletons={list(self._singletons)})"
