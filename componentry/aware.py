"""
Aware Interfaces

Structural notification callbacks. The container invokes them right after
property population, in a fixed order (name, type loader, container),
before any post-processor sees the instance.

Properties declared by these interfaces are never autowired.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .container import ComponentContainer
    from .introspection import TypeLoader


class Aware(ABC):
    """Marker base for all aware interfaces."""

    pass


class NameAware(Aware):
    """Receives the name the component was registered under."""

    @abstractmethod
    def set_component_name(self, name: str) -> None:
        pass


class TypeLoaderAware(Aware):
    """Receives the container's TypeLoader."""

    @abstractmethod
    def set_type_loader(self, type_loader: 'TypeLoader') -> None:
        pass


class ContainerAware(Aware):
    """Receives the owning container."""

    @abstractmethod
    def set_container(self, container: 'ComponentContainer') -> None:
        pass
