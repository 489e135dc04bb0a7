"""
ResolutionContext

Per-thread state of an ongoing resolution:

- The creation path (names currently being created, outermost first),
  used in circular-reference diagnostics
- The prototypes currently being created, so that prototype cycles are
  detected instead of recursing forever

The context is stored in a ContextVar owned by each container, so two
threads (or two containers) never see each other's in-progress prototypes.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, List, Optional, Set


class ResolutionContext:
    """State of the component creations running in the current thread.

    Attributes:
        creation_path: Names being created, outermost first
        prototypes_in_creation: Prototype names currently being created

    Note:
        This class is used internally by ComponentContainer.
        Users should not need to interact with it directly.
    """

    def __init__(self):
        self.creation_path: List[str] = []
        self.prototypes_in_creation: Set[str] = set()

    def is_prototype_in_creation(self, name: str) -> bool:
        return name in self.prototypes_in_creation

    def describe_cycle(self, name: str) -> str:
        """Render the creation path that leads back to ``name``.

        Example::

            ctx.creation_path = ["a", "b"]
            ctx.describe_cycle("a")   # 'a -> b -> a'
        """
        path = self.creation_path
        if name in path:
            path = path[path.index(name):]
        return " -> ".join(path + [name])


class ResolutionContextHolder:
    """Owns the ContextVar holding a container's ResolutionContext."""

    def __init__(self, label: str):
        self._var: ContextVar[Optional[ResolutionContext]] = ContextVar(
            f'_COMPONENTRY_RESOLUTION_CONTEXT_{label}',
            default=None
        )

    def current(self) -> ResolutionContext:
        ctx = self._var.get()
        if ctx is None:
            ctx = ResolutionContext()
            self._var.set(ctx)
        return ctx

    @contextmanager
    def creating(self, name: str, prototype: bool = False) -> Iterator[ResolutionContext]:
        """Mark ``name`` as being created for the duration of the block.

        The marks are always removed, also when creation fails, so that a
        failed creation never leaves the name marked as in creation.
        """
        ctx = self.current()
        ctx.creation_path.append(name)
        if prototype:
            ctx.prototypes_in_creation.add(name)
        try:
            yield ctx
        finally:
            if prototype:
                ctx.prototypes_in_creation.discard(name)
            ctx.creation_path.pop()
