"""
Ordering

Ordering and priority traits shared by the dependency resolver and the
post-processor pipeline.

Lower values mean higher precedence. ``PriorityOrdered`` objects always
sort ahead of plain ``Ordered`` ones, and objects without any order sort
last, keeping their registration order.

Example::

    @order(10)
    class AuditProcessor(InitializationPostProcessor):
        ...

    class ProxyCreator(EarlyReferencePostProcessor, PriorityOrdered):
        def get_order(self) -> int:
            return HIGHEST_PRECEDENCE
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List, Optional, TypeVar

HIGHEST_PRECEDENCE = -(2 ** 31)
LOWEST_PRECEDENCE = 2 ** 31 - 1

_ORDER_ATTR = '__component_order__'
_PRIORITY_ATTR = '__component_priority__'

T = TypeVar('T')


class Ordered(ABC):
    """Capability for objects that expose a numeric precedence."""

    @abstractmethod
    def get_order(self) -> int:
        """Return the order value (lower is higher precedence)."""
        pass


class PriorityOrdered(Ordered):
    """Ordered objects that are always sorted ahead of plain Ordered ones.

    By-type autowiring into a PriorityOrdered component does not eagerly
    instantiate candidates whose type is unknown.
    """

    pass


def order(value: int) -> Callable[[T], T]:
    """Class decorator assigning an order value.

    Example::

        @order(1)
        class FirstListener:
            pass
    """

    def decorate(cls: T) -> T:
        setattr(cls, _ORDER_ATTR, value)
        return cls

    return decorate


def priority(value: int) -> Callable[[T], T]:
    """Class decorator assigning a priority for single-candidate selection.

    When several components match a single-valued injection point and none
    is primary, the one with the lowest priority value wins.
    """

    def decorate(cls: T) -> T:
        setattr(cls, _PRIORITY_ATTR, value)
        return cls

    return decorate


def get_order(obj: Any) -> Optional[int]:
    """Return the order of an object or class, or None if it has none."""
    if isinstance(obj, Ordered):
        return obj.get_order()
    return getattr(obj, _ORDER_ATTR, None)


def get_priority(obj: Any) -> Optional[int]:
    """Return the priority of an object or class, or None if it has none."""
    return getattr(obj, _PRIORITY_ATTR, None)


def sort_by_order(items: Iterable[T], key: Callable[[T], Any] = lambda item: item) -> List[T]:
    """Sort items by their ordering trait.

    The sort is stable, so items with equal (or no) order keep the order
    they were given in.

    Args:
        items: The items to sort
        key: Extracts the object whose trait is inspected

    Returns:
        A new sorted list
    """

    def sort_key(item):
        target = key(item)
        value = get_order(target)
        return (
            0 if isinstance(target, PriorityOrdered) else 1,
            LOWEST_PRECEDENCE if value is None else value,
        )

    return sorted(items, key=sort_key)
