"""
ComponentModule

This module provides the module class for grouping component definitions.
A ComponentModule holds named definitions, which are then loaded into a
ComponentContainer.

Key features:
- Named definitions: module.define("name", SomeClass, ...)
- Shorthands for the built-in scopes: module.singleton() and module.prototype()
- Context manager support for cleaner definition blocks

Example::

    module = ComponentModule()
    with module:
        module.singleton("database", Database, init_method_name="connect")
        module.prototype(
            "repository", UserRepository,
            autowire_mode=AutowireMode.CONSTRUCTOR,
        )

    container = ComponentContainer()
    container.load_modules([module])
"""

from typing import Any, Dict, Optional

from .definition import SCOPE_PROTOTYPE, SCOPE_SINGLETON, ComponentDefinition, ComponentType


class ComponentModule:
    """Module for defining named component definitions.

    Attributes:
        lazy_init: Default for the ``lazy_init`` flag of definitions created
            with define(), singleton() and prototype()
        _definitions: Registered definitions, in registration order

    Example::

        module = ComponentModule(lazy_init=True)
        with module:
            module.singleton("cache", Cache)
            module.define("worker", Worker, scope="thread")
    """

    def __init__(self, lazy_init: bool = False):
        """Initialize a new module with empty definitions.

        Args:
            lazy_init: If True, singletons of this module are skipped by
                preinstantiate_singletons() and created on first request.
                Defaults to False.
        """
        self._definitions: Dict[str, ComponentDefinition] = {}
        self.lazy_init = lazy_init

    def __enter__(self) -> 'ComponentModule':
        """Enter context manager for cleaner definition blocks.

        The context manager is optional but provides visual structure
        for module definitions.
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        return False

    @property
    def definitions(self) -> Dict[str, ComponentDefinition]:
        """Get registered definitions (read-only access for container).

        Returns:
            Mapping of component name to ComponentDefinition
        """
        return self._definitions

    def define(self, name: str, component_type: Optional[ComponentType] = None,
               **attributes: Any) -> ComponentDefinition:
        """Create a definition and add it under ``name``.

        Args:
            name: Component name
            component_type: Class or dotted import path of the implementation
            **attributes: Any other ComponentDefinition field

        Returns:
            The new definition, for further customization

        Example::

            definition = module.define("service", "myapp.services.UserService")
            definition.property_values.add("timeout", "30")
        """
        attributes.setdefault('lazy_init', self.lazy_init)
        definition = ComponentDefinition(component_type=component_type, **attributes)
        self.add_definition(name, definition)
        return definition

    def singleton(self, name: str, component_type: Optional[ComponentType] = None,
                  **attributes: Any) -> ComponentDefinition:
        """Define a singleton component (one shared instance)."""
        return self.define(name, component_type, scope=SCOPE_SINGLETON, **attributes)

    def prototype(self, name: str, component_type: Optional[ComponentType] = None,
                  **attributes: Any) -> ComponentDefinition:
        """Define a prototype component (a new instance per request)."""
        return self.define(name, component_type, scope=SCOPE_PROTOTYPE, **attributes)

    def add_definition(self, name: str, definition: ComponentDefinition) -> None:
        """Add a definition to the module.

        Note:
            A later definition with the same name replaces the earlier one.
            Duplicate checking against other modules is performed when the
            module is loaded into a container.
        """
        self._definitions[name] = definition
