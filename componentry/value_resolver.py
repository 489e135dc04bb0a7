"""
ValueResolver

Resolves declared property and constructor-argument values into the
objects that are actually injected:

- ComponentReference: the referenced component (created if necessary)
- ComponentDefinition: an anonymous inner component
- TypedStringValue: the string, converted to its explicit target type
- list / tuple / set / frozenset / dict: a fresh copy with every element
  resolved
- anything else: the value itself
"""

from typing import Any, Optional, TYPE_CHECKING

from .definition import ComponentDefinition, ComponentReference, TypedStringValue
from .exceptions import ComponentCreationError, ComponentryError, DefinitionError

if TYPE_CHECKING:
    from .container import ComponentContainer


def is_runtime_reference(value: Any) -> bool:
    """Whether resolving ``value`` yields live objects rather than literals."""
    if isinstance(value, (ComponentReference, ComponentDefinition)):
        return True
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(is_runtime_reference(v) for v in value)
    if isinstance(value, dict):
        return any(is_runtime_reference(k) or is_runtime_reference(v) for k, v in value.items())
    return False


class ValueResolver:
    """Resolves values on behalf of one component being created.

    Args:
        container: The owning container
        component_name: The component whose values are resolved
        definition: Its merged definition
    """

    def __init__(self, container: 'ComponentContainer', component_name: str,
                 definition: ComponentDefinition):
        self._container = container
        self._component_name = component_name
        self._definition = definition

    def resolve(self, arg_name: Optional[str], value: Any) -> Any:
        """Resolve a declared value.

        Raises:
            ComponentCreationError: When a referenced or inner component
                cannot be created, naming the component being wired
        """
        if isinstance(value, ComponentReference):
            return self._resolve_reference(arg_name, value)
        if isinstance(value, ComponentDefinition):
            return self._resolve_inner_component(arg_name, value)
        if isinstance(value, TypedStringValue):
            if value.target_type is None or value.value is None:
                return value.value
            return self._container.type_converter.convert(value.value, value.target_type, arg_name)
        if isinstance(value, list):
            return [self.resolve(arg_name, v) for v in value]
        if isinstance(value, tuple):
            return tuple(self.resolve(arg_name, v) for v in value)
        if isinstance(value, frozenset):
            return frozenset(self.resolve(arg_name, v) for v in value)
        if isinstance(value, set):
            return {self.resolve(arg_name, v) for v in value}
        if isinstance(value, dict):
            return {self.resolve(arg_name, k): self.resolve(arg_name, v) for k, v in value.items()}
        return value

    def _resolve_reference(self, arg_name: Optional[str], ref: ComponentReference) -> Any:
        try:
            if ref.to_parent:
                parent = self._container.parent
                if parent is None:
                    raise DefinitionError(
                        f"Cannot resolve reference to component '{ref.name}' in parent "
                        f"container: no parent container available",
                        component_name=self._component_name,
                    )
                instance = parent.get(ref.name)
            else:
                instance = self._container.get(ref.name)
                if self._definition.track_dependencies:
                    self._container.register_dependent(ref.name, self._component_name)
            return instance
        except ComponentryError as e:
            raise ComponentCreationError(
                self._component_name,
                f"Cannot resolve reference to component '{ref.name}' while setting {self._describe(arg_name)}",
                phase="population",
                cause=e,
            ) from e

    def _resolve_inner_component(self, arg_name: Optional[str],
                                 inner: ComponentDefinition) -> Any:
        inner_name = self._container.next_inner_component_name(self._component_name)
        try:
            return self._container.create_inner_component(
                inner_name, inner, self._component_name, self._definition
            )
        except ComponentryError as e:
            raise ComponentCreationError(
                self._component_name,
                f"Cannot create inner component '{inner_name}' of type "
                f"[{inner.type_name()}] while setting {self._describe(arg_name)}",
                phase="population",
                cause=e,
            ) from e

    @staticmethod
    def _describe(arg_name: Optional[str]) -> str:
        if arg_name is None:
            return "constructor argument"
        return f"'{arg_name}'"
