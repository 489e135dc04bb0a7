"""
Lifecycle

Initialization and destruction of components:

- InitializingComponent / DisposableComponent: lifecycle capabilities a
  component class may implement
- LifecycleInitializer: aware callbacks, before-initialization stage,
  init methods, after-initialization stage
- DisposableAdapter: runs destruction post-processors and destroy methods
  of a singleton when the container is closed
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, TYPE_CHECKING

from .aware import ContainerAware, NameAware, TypeLoaderAware
from .exceptions import ComponentCreationError, DefinitionError
from .introspection import get_parameters

if TYPE_CHECKING:
    from .container import ComponentContainer
    from .definition import ComponentDefinition
    from .post_processors import DestructionPostProcessor, PostProcessorPipeline

logger = logging.getLogger(__name__)

# Destroy method name asking the container to use close() or shutdown()
INFER_METHOD = "(inferred)"
_INFERRED_DESTROY_METHODS = ("close", "shutdown")


class InitializingComponent(ABC):
    """Components that need to run code after all properties are set."""

    @abstractmethod
    def after_properties_set(self) -> None:
        pass


class DisposableComponent(ABC):
    """Components that release resources when the container is closed."""

    @abstractmethod
    def destroy(self) -> None:
        pass


class LifecycleInitializer:
    """Runs a populated instance through the initialization phase.

    Order:
        1. Aware callbacks (name, type loader, container)
        2. Before-initialization post-processors (unless synthetic)
        3. ``after_properties_set()``, then the custom init method
        4. After-initialization post-processors (unless synthetic)
    """

    def __init__(self, container: 'ComponentContainer', pipeline: 'PostProcessorPipeline'):
        self._container = container
        self._pipeline = pipeline

    def initialize(self, name: str, instance: Any,
                   definition: Optional['ComponentDefinition'] = None) -> Any:
        """Initialize ``instance`` and return the object to expose.

        The returned object may differ from ``instance`` when a
        post-processor wrapped it.

        Raises:
            ComponentCreationError: Any failure, with phase ``initialization``.
                A ComponentCreationError already naming this component
                propagates unchanged.
        """
        detail = "Invocation of init method failed"
        try:
            self.invoke_aware_methods(name, instance)

            wrapped = instance
            if definition is None or not definition.synthetic:
                detail = "Post-processing before initialization failed"
                wrapped = self._pipeline.apply_before_initialization(wrapped, name)

            detail = "Invocation of init method failed"
            self.invoke_init_methods(name, wrapped, definition)

            if definition is None or not definition.synthetic:
                detail = "Post-processing after initialization failed"
                wrapped = self._pipeline.apply_after_initialization(wrapped, name)
            return wrapped
        except Exception as e:
            if isinstance(e, ComponentCreationError) and e.component_name == name:
                raise
            raise ComponentCreationError(name, detail, phase="initialization", cause=e) from e

    def invoke_aware_methods(self, name: str, instance: Any) -> None:
        if isinstance(instance, NameAware):
            instance.set_component_name(name)
        if isinstance(instance, TypeLoaderAware):
            instance.set_type_loader(self._container.type_loader)
        if isinstance(instance, ContainerAware):
            instance.set_container(self._container)

    def invoke_init_methods(self, name: str, instance: Any,
                            definition: Optional['ComponentDefinition']) -> None:
        is_initializing = isinstance(instance, InitializingComponent)
        if is_initializing and (
                definition is None
                or not definition.is_externally_managed_init_method('after_properties_set')):
            logger.debug(f"Invoking after_properties_set() on component with name '{name}'")
            instance.after_properties_set()

        if definition is None or not definition.init_method_name:
            return
        init_name = definition.init_method_name
        if is_initializing and init_name == 'after_properties_set':
            return
        if definition.is_externally_managed_init_method(init_name):
            return
        self.invoke_custom_init_method(name, instance, definition)

    def invoke_custom_init_method(self, name: str, instance: Any,
                                  definition: 'ComponentDefinition') -> None:
        init_name = definition.init_method_name
        method = getattr(instance, init_name, None)
        if method is None or not callable(method):
            if definition.enforce_init_method:
                raise DefinitionError(
                    f"Could not find an init method named '{init_name}' "
                    f"on component with name '{name}'",
                    component_name=name,
                )
            logger.debug(f"No default init method named '{init_name}' found on component with name '{name}'")
            return

        _check_no_required_arguments(method, init_name, name, "Init")
        logger.debug(f"Invoking init method '{init_name}' on component with name '{name}'")
        method()


def _check_no_required_arguments(method: Callable, method_name: str, name: str, kind: str) -> None:
    required = [p.name for p in get_parameters(method) if not p.has_default]
    if required:
        raise DefinitionError(
            f"{kind} method '{method_name}' on component with name '{name}' "
            f"must not require arguments (requires: {', '.join(required)})",
            component_name=name,
        )


class DisposableAdapter:
    """Destroys one singleton.

    Runs, in order: the destruction post-processors, ``destroy()`` of a
    DisposableComponent, and the custom destroy method.
    """

    def __init__(self, instance: Any, name: str, definition: 'ComponentDefinition',
                 processors: List['DestructionPostProcessor']):
        self.instance = instance
        self.name = name
        self._processors = processors
        self._invoke_disposable = (
            isinstance(instance, DisposableComponent)
            and not definition.is_externally_managed_destroy_method('destroy')
        )
        self._destroy_method_name = self._determine_destroy_method(instance, definition)

    def _determine_destroy_method(self, instance: Any,
                                  definition: 'ComponentDefinition') -> Optional[str]:
        method_name = definition.destroy_method_name
        if method_name == INFER_METHOD:
            if isinstance(instance, DisposableComponent):
                return None
            for candidate in _INFERRED_DESTROY_METHODS:
                if callable(getattr(instance, candidate, None)):
                    return candidate
            return None
        if not method_name:
            return None
        if self._invoke_disposable and method_name == 'destroy':
            return None
        if definition.is_externally_managed_destroy_method(method_name):
            return None
        method = getattr(instance, method_name, None)
        if method is None or not callable(method):
            if definition.enforce_destroy_method:
                raise DefinitionError(
                    f"Could not find a destroy method named '{method_name}' "
                    f"on component with name '{self.name}'",
                    component_name=self.name,
                )
            return None
        _check_no_required_arguments(method, method_name, self.name, "Destroy")
        return method_name

    @staticmethod
    def has_destroy_method(instance: Any, definition: 'ComponentDefinition') -> bool:
        if isinstance(instance, DisposableComponent):
            return True
        method_name = definition.destroy_method_name
        if method_name == INFER_METHOD:
            return any(callable(getattr(instance, m, None)) for m in _INFERRED_DESTROY_METHODS)
        return bool(method_name)

    def destroy(self) -> None:
        for processor in self._processors:
            processor.before_destruction(self.instance, self.name)

        if self._invoke_disposable:
            logger.debug(f"Invoking destroy() on component with name '{self.name}'")
            self.instance.destroy()

        if self._destroy_method_name:
            logger.debug(f"Invoking destroy method '{self._destroy_method_name}' "
                         f"on component with name '{self.name}'")
            getattr(self.instance, self._destroy_method_name)()
