"""
ComponentContainer

This module provides the container that creates, wires, initializes and
destroys components. It is the heart of componentry, responsible for:

- Storing component definitions and their merged runtime copies
- Resolving components by name or type, including ancestor containers
- Creating singletons, prototypes and custom-scoped components
- Resolving circular references between singletons via early references
- Running the post-processor pipeline around every creation
- Destroying singletons, dependents first

Example::

    module = ComponentModule()
    with module:
        module.define("repository", InMemoryRepository)
        module.define("service", UserService, autowire_mode=AutowireMode.CONSTRUCTOR)

    with ComponentContainer() as container:
        container.load_modules([module])
        service = container.get("service")
"""

import inspect
import itertools
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Type, TypeVar, Union

from .aware import ContainerAware, NameAware, TypeLoaderAware
from .constructor_resolver import ConstructorResolver
from .conversion import TypeConverter
from .definition import (
    SCOPE_PROTOTYPE,
    AutowireMode,
    ComponentDefinition,
    DependencyCheck,
)
from .dependency import DependencyDescriptor, DependencyResolver
from .exceptions import (
    AmbiguousResolutionError,
    CircularWiringError,
    ComponentCreationError,
    ComponentNotOfRequiredTypeError,
    ContainerClosedError,
    DefinitionError,
    DefinitionNotFoundError,
    DuplicateDefinitionError,
    TypeConversionError,
)
from .introspection import (
    PropertyIntrospector,
    PropertySlot,
    TypeLoader,
    factory_method_candidates,
    get_return_type,
    is_assignable,
    is_instance_of,
    unwrap_optional,
)
from .lifecycle import DisposableAdapter, LifecycleInitializer
from .module import ComponentModule
from .populator import PropertyPopulator
from .post_processors import InstantiationPostProcessor, PostProcessor, PostProcessorPipeline
from .registry import EarlyReference, SingletonRegistry
from .resolution_context import ResolutionContextHolder
from .scope import Scope
from .wrapper import InstanceWrapper

logger = logging.getLogger(__name__)

T = TypeVar('T')

_INNER_SEPARATOR = "#inner#"


class ComponentContainer:
    """Container with definition registry, dependency resolution and lifecycle management.

    Args:
        parent: Ancestor container consulted for names and types not
            defined locally
        allow_circular_references: Expose early references of singletons
            in creation so that circular property references resolve
        allow_raw_injection_despite_wrapping: Accept that dependents keep a
            raw early reference when the singleton is wrapped afterwards
        allow_definition_overriding: Replace existing definitions on
            re-registration instead of raising DuplicateDefinitionError
        type_converter: Converter for declared values (default TypeConverter)
        type_loader: Loader for dotted component type paths (default TypeLoader)

    Attributes:
        pipeline: The ordered post-processor pipeline
        dependency_resolver: Resolver used for every by-type injection point
        introspector: Cached property slot discovery
    """

    def __init__(
        self,
        parent: Optional['ComponentContainer'] = None,
        *,
        allow_circular_references: bool = True,
        allow_raw_injection_despite_wrapping: bool = False,
        allow_definition_overriding: bool = False,
        type_converter: Optional[TypeConverter] = None,
        type_loader: Optional[TypeLoader] = None,
    ):
        self.parent = parent
        self.allow_circular_references = allow_circular_references
        self.allow_raw_injection_despite_wrapping = allow_raw_injection_despite_wrapping
        self.allow_definition_overriding = allow_definition_overriding
        self.type_converter = type_converter or TypeConverter()
        self.type_loader = type_loader or TypeLoader()
        self.introspector = PropertyIntrospector()
        self.pipeline = PostProcessorPipeline()
        self.dependency_resolver = DependencyResolver(self)

        self._registry = SingletonRegistry()
        self._constructor_resolver = ConstructorResolver(self)
        self._populator = PropertyPopulator(self)
        self._initializer = LifecycleInitializer(self, self.pipeline)
        self._resolution = ResolutionContextHolder(str(id(self)))

        self._definitions: Dict[str, ComponentDefinition] = {}
        self._definitions_lock = threading.RLock()
        self._merged: Dict[str, ComponentDefinition] = {}
        self._merged_lock = threading.Lock()
        self._scopes: Dict[str, Scope] = {}
        self._ignored_types: Set[Any] = set()
        self._ignored_interfaces: Set[type] = {NameAware, TypeLoaderAware, ContainerAware}
        self._resolvable: Dict[type, Any] = {ComponentContainer: self}
        self._inner_counter = itertools.count()
        self._closed = False

    # ------------------------------------------------------------------
    # Registration and configuration
    # ------------------------------------------------------------------

    def register_definition(self, name: str, definition: ComponentDefinition) -> None:
        """Register a definition under ``name``.

        Raises:
            DefinitionError: When the definition names neither a type nor a
                factory component
            DuplicateDefinitionError: When ``name`` is already bound and
                overriding is disabled
        """
        self._ensure_not_closed()
        if not isinstance(definition, ComponentDefinition):
            raise TypeError(f"Expected a ComponentDefinition for '{name}', got {type(definition).__name__}")
        if definition.component_type is None and not definition.factory_component_name:
            raise DefinitionError(
                f"Component definition '{name}' declares neither a component type "
                f"nor a factory component",
                component_name=name,
            )

        with self._definitions_lock:
            existing = name in self._definitions or self._registry.contains_singleton(name)
            if existing:
                if not self.allow_definition_overriding:
                    raise DuplicateDefinitionError(
                        f"Cannot register component definition for '{name}': "
                        f"there is already a component bound under that name.\n"
                        f"Registered names: {self._registered_names()}"
                    )
                logger.debug(f"Overriding component definition for component '{name}'")
            self._definitions[name] = definition
            with self._merged_lock:
                self._merged.pop(name, None)
        if existing:
            self._registry.destroy_singleton(name)

    def remove_definition(self, name: str) -> None:
        """Remove the definition and destroy its singleton, if created.

        Raises:
            DefinitionNotFoundError: When no definition is registered under ``name``
        """
        with self._definitions_lock:
            if name not in self._definitions:
                raise self._not_found(name)
            del self._definitions[name]
            with self._merged_lock:
                self._merged.pop(name, None)
        self._registry.destroy_singleton(name)

    def load_modules(self, modules: Iterable[ComponentModule]) -> None:
        """Load modules and register their definitions.

        Args:
            modules: ComponentModule instances, registered in order

        Raises:
            DuplicateDefinitionError: When a name is already registered.
                This prevents accidental overwriting of existing definitions.

        Example::

            module = ComponentModule()
            with module:
                module.define("database", Database)

            container = ComponentContainer()
            container.load_modules([module])
        """
        for module in modules:
            for name, definition in module.definitions.items():
                self.register_definition(name, definition)

    def unload_modules(self, modules: Iterable[ComponentModule]) -> None:
        """Unload modules and remove their definitions.

        Singletons created from these definitions are destroyed. Names that
        are no longer registered are silently skipped, so the operation is
        safe to call multiple times.
        """
        for module in modules:
            for name in module.definitions:
                if name in self._definitions:
                    self.remove_definition(name)

    def register_singleton(self, name: str, instance: Any) -> None:
        """Register a fully initialized object as a singleton.

        The object takes part in lookups by name and by type, but is not
        populated, initialized or destroyed by the container.
        """
        self._ensure_not_closed()
        if instance is None:
            raise ValueError(f"Singleton object for '{name}' must not be None")
        with self._definitions_lock:
            if name in self._definitions:
                raise DuplicateDefinitionError(
                    f"Could not register object [{instance!r}] under component name '{name}': "
                    f"there is already a definition bound"
                )
            self._registry.register_singleton(name, instance)

    def add_post_processor(self, processor: PostProcessor) -> None:
        """Add a post-processor to the pipeline.

        Processors apply to components created after registration.
        """
        self.pipeline.add(processor)
        self._populator.clear_cache()

    def register_scope(self, scope_name: str, scope: Scope) -> None:
        """Register a custom scope that definitions may name in ``scope``."""
        if scope_name in ("singleton", SCOPE_PROTOTYPE):
            raise ValueError(f"Cannot replace the built-in '{scope_name}' scope")
        if not isinstance(scope, Scope):
            raise TypeError(f"Expected a Scope, got {type(scope).__name__}")
        logger.debug(f"Registering scope '{scope_name}' with implementation [{scope!r}]")
        self._scopes[scope_name] = scope

    def get_registered_scope(self, scope_name: str) -> Optional[Scope]:
        return self._scopes.get(scope_name)

    def ignore_dependency_type(self, dependency_type: Any) -> None:
        """Never autowire or dependency-check properties of this type."""
        self._ignored_types.add(dependency_type)
        self._populator.clear_cache()

    def ignore_dependency_interface(self, interface: type) -> None:
        """Never autowire properties declared by this interface.

        The aware interfaces are ignored by default: their setters are
        invoked during initialization instead.
        """
        self._ignored_interfaces.add(interface)
        self._populator.clear_cache()

    def register_resolvable_dependency(self, dependency_type: type, value: Any) -> None:
        """Inject ``value`` into every injection point of ``dependency_type``.

        The value itself is not registered as a component.
        """
        if not is_instance_of(value, dependency_type):
            raise ValueError(
                f"Value [{value!r}] does not implement the specified dependency type "
                f"[{dependency_type.__name__}]"
            )
        self._resolvable[dependency_type] = value

    def resolvable_dependency(self, dependency_type: Any) -> Optional[Any]:
        for registered_type, value in self._resolvable.items():
            if not inspect.isclass(dependency_type):
                continue
            if is_assignable(registered_type, dependency_type) and isinstance(value, dependency_type):
                return value
        return None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: Union[str, Type[T]], *args: Any, required_type: Optional[Any] = None) -> Any:
        """Return the component registered under a name, or the single one of a type.

        Args:
            name: Component name, or a type matching exactly one candidate
            *args: Explicit constructor or factory-method arguments
            required_type: Type the returned object must be an instance of

        Returns:
            The component instance

        Raises:
            DefinitionNotFoundError: When the name or type is not registered
            AmbiguousResolutionError: When a type matches several candidates
            CircularWiringError: When an unresolvable circular reference is detected
            ComponentCreationError: When creating the component fails
            ComponentNotOfRequiredTypeError: When the object has another type

        Example::

            service = container.get("service")
            service = container.get(UserService)
            report = container.get("report", "2024-Q1")  # explicit arguments
        """
        self._ensure_not_closed()
        if not isinstance(name, str):
            return self._get_by_type(name, args)

        if not args:
            shared = self._registry.get_singleton(name)
            if shared is not None:
                if self._registry.is_in_creation(name):
                    logger.debug(
                        f"Returning eagerly cached instance of singleton component '{name}' "
                        f"that is not fully initialized yet - a consequence of a circular reference"
                    )
                return self._check_required_type(name, shared, required_type)

        ctx = self._resolution.current()
        if ctx.is_prototype_in_creation(name):
            raise CircularWiringError(
                name,
                f"Requested prototype component is currently in creation: {ctx.describe_cycle(name)}",
            )

        if name not in self._definitions:
            if self.parent is not None and self.parent.contains(name):
                return self.parent.get(name, *args, required_type=required_type)
            raise self._not_found(name)

        definition = self.get_merged_definition(name)
        self._create_depends_on(name, definition)

        if definition.is_singleton:
            instance = self._registry.get_or_create_singleton(
                name, lambda: self._create_tracked(name, definition, args)
            )
        elif definition.is_prototype:
            with self._resolution.creating(name, prototype=True):
                instance = self._create(name, definition, args)
        else:
            scope = self._scopes.get(definition.scope)
            if scope is None:
                raise DefinitionError(
                    f"No scope registered for scope name '{definition.scope}'",
                    component_name=name,
                )
            instance = scope.get(name, lambda: self._create_scoped(name, definition, args))
        return self._check_required_type(name, instance, required_type)

    def __getitem__(self, key: Union[str, Type[T]]) -> Callable[..., Any]:
        """Support subscript syntax: container["name"]() or container[Type]().

        Example::

            # These are equivalent:
            service = container[UserService]()
            service = container.get(UserService)
        """

        def getter(*args: Any) -> Any:
            return self.get(key, *args)

        return getter

    def contains(self, name: str) -> bool:
        """Whether a definition or singleton is registered here or in an ancestor."""
        if name in self._definitions or self._registry.contains_singleton(name):
            return True
        return self.parent is not None and self.parent.contains(name)

    def contains_definition(self, name: str) -> bool:
        """Whether a definition is registered locally."""
        return name in self._definitions

    def contains_singleton(self, name: str) -> bool:
        return self._registry.contains_singleton(name)

    def definition_names(self) -> List[str]:
        """Names of the local definitions, in registration order."""
        with self._definitions_lock:
            return list(self._definitions)

    def get_definition(self, name: str) -> ComponentDefinition:
        """Return the registered (not merged) local definition."""
        definition = self._definitions.get(name)
        if definition is None:
            raise self._not_found(name)
        return definition

    def get_merged_definition(self, name: str) -> ComponentDefinition:
        """Return the merged runtime copy of the definition registered under ``name``.

        The merged copy is created once per name and holds the runtime caches
        (resolved type, resolved constructor, converted property values).
        """
        merged = self._merged.get(name)
        if merged is not None:
            return merged
        if name not in self._definitions:
            if self.parent is not None and self.parent.contains(name):
                return self.parent.get_merged_definition(name)
            raise self._not_found(name)
        with self._merged_lock:
            merged = self._merged.get(name)
            if merged is None:
                merged = self._definitions[name].clone()
                self._merged[name] = merged
        return merged

    def is_singleton(self, name: str) -> bool:
        if self._registry.contains_singleton(name) and name not in self._definitions:
            return True
        if name in self._definitions:
            return self.get_merged_definition(name).is_singleton
        if self.parent is not None and self.parent.contains(name):
            return self.parent.is_singleton(name)
        raise self._not_found(name)

    def is_prototype(self, name: str) -> bool:
        if name in self._definitions:
            return self.get_merged_definition(name).is_prototype
        if self._registry.contains_singleton(name):
            return False
        if self.parent is not None and self.parent.contains(name):
            return self.parent.is_prototype(name)
        raise self._not_found(name)

    def is_primary(self, name: str) -> bool:
        if name in self._definitions:
            return self.get_merged_definition(name).primary
        if self.parent is not None and self.parent.contains(name):
            return self.parent.is_primary(name)
        return False

    def is_autowire_candidate(self, name: str) -> bool:
        if name in self._definitions:
            return self.get_merged_definition(name).autowire_candidate
        if self.parent is not None and self.parent.contains(name):
            return self.parent.is_autowire_candidate(name)
        return True

    def is_currently_in_creation(self, name: str) -> bool:
        return self._registry.is_in_creation(name) or self._resolution.current().is_prototype_in_creation(name)

    # ------------------------------------------------------------------
    # Type queries
    # ------------------------------------------------------------------

    def get_type(self, name: str, allow_eager_init: bool = False) -> Optional[type]:
        """Determine the type of the named component without creating it, if possible.

        Returns:
            The (predicted) type, or None when it cannot be determined

        Raises:
            DefinitionNotFoundError: When the name is not registered
        """
        instance = self._registry.get_singleton(name, allow_early=False)
        if instance is not None:
            return type(instance)
        if name not in self._definitions:
            if self.parent is not None and self.parent.contains(name):
                return self.parent.get_type(name, allow_eager_init)
            raise self._not_found(name)
        return self._predict_type(name, self.get_merged_definition(name), allow_eager_init)

    def is_type_match(self, name: str, type_to_match: Any) -> bool:
        instance = self._registry.get_singleton(name, allow_early=False)
        if instance is not None:
            return is_instance_of(instance, type_to_match)
        predicted = self.get_type(name)
        return predicted is not None and is_assignable(type_to_match, predicted)

    def names_for_type(self, type_to_match: Any, include_non_singletons: bool = True,
                       allow_eager_init: bool = True) -> List[str]:
        """Names of every component matching the type, local names first.

        Args:
            type_to_match: Class (or typing construct) to match
            include_non_singletons: Also match prototype and custom-scoped
                definitions
            allow_eager_init: Create singletons whose type cannot be
                predicted otherwise

        Returns:
            Matching names in registration order, followed by the names
            of manually registered singletons and of ancestor components
            not shadowed by a local name
        """
        result: List[str] = []
        for name in self.definition_names():
            definition = self.get_merged_definition(name)
            if not include_non_singletons and not definition.is_singleton:
                continue
            if self._matches_type(name, definition, type_to_match, allow_eager_init):
                result.append(name)

        for name in self._registry.singleton_names():
            if name in self._definitions or name in result:
                continue
            instance = self._registry.get_singleton(name, allow_early=False)
            if instance is not None and is_instance_of(instance, type_to_match):
                result.append(name)

        if self.parent is not None:
            for name in self.parent.names_for_type(type_to_match, include_non_singletons, allow_eager_init):
                if name not in result and not self._contains_local(name):
                    result.append(name)
        return result

    def components_of_type(self, type_to_match: Any, include_non_singletons: bool = True,
                           allow_eager_init: bool = True) -> Dict[str, Any]:
        """Map of name to instance for every component matching the type."""
        result: Dict[str, Any] = {}
        for name in self.names_for_type(type_to_match, include_non_singletons, allow_eager_init):
            result[name] = self.get(name)
        return result

    # ------------------------------------------------------------------
    # Dependency edges
    # ------------------------------------------------------------------

    def register_dependent(self, name: str, dependent_name: str) -> None:
        """Record that ``dependent_name`` depends on ``name``."""
        self._registry.register_dependent(name, dependent_name)

    def get_dependents(self, name: str) -> List[str]:
        return self._registry.get_dependents(name)

    def get_dependencies(self, name: str) -> List[str]:
        return self._registry.get_dependencies(name)

    def is_excluded_from_dependency_check(self, slot: PropertySlot, cls: type) -> bool:
        """Whether the slot's type or declaring interface is ignored for autowiring."""
        declared, _ = unwrap_optional(slot.declared_type)
        if declared in self._ignored_types or slot.declared_type in self._ignored_types:
            return True
        for interface in self._ignored_interfaces:
            if isinstance(cls, type) and issubclass(cls, interface) and _declares(interface, slot.name):
                return True
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def preinstantiate_singletons(self) -> None:
        """Create every non-lazy singleton definition, in registration order."""
        self._ensure_not_closed()
        logger.debug(f"Pre-instantiating singletons in {self!r}")
        for name in self.definition_names():
            definition = self.get_merged_definition(name)
            if definition.is_singleton and not definition.lazy_init:
                self.get(name)

    def destroy_singletons(self) -> None:
        """Destroy every singleton, dependents first.

        Exceptions raised by destroy methods are logged and destruction
        continues with the remaining components.
        """
        self._registry.destroy_singletons()

    def destroy_scoped_component(self, name: str) -> None:
        """Remove the named component from its custom scope and destroy it."""
        definition = self.get_merged_definition(name)
        if definition.is_singleton or definition.is_prototype:
            raise ValueError(f"Component '{name}' does not have a custom scope")
        scope = self._scopes.get(definition.scope)
        if scope is None:
            raise DefinitionError(f"No scope registered for scope name '{definition.scope}'", component_name=name)
        instance = scope.remove(name)
        if instance is not None:
            self._destroy(name, instance, definition)

    def destroy_component(self, instance: Any, name: Optional[str] = None) -> None:
        """Run the destruction callbacks of an externally managed instance."""
        definition = ComponentDefinition(component_type=type(instance), scope=SCOPE_PROTOTYPE)
        self._destroy(name or _default_name(type(instance)), instance, definition)

    def close(self) -> None:
        """Destroy all singletons and close the container.

        Further use of the container raises ContainerClosedError. Closing
        twice is a no-op.
        """
        if self._closed:
            return
        self.destroy_singletons()
        self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self) -> 'ComponentContainer':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    # ------------------------------------------------------------------
    # Externally created instances
    # ------------------------------------------------------------------

    def create_component(self, cls: Type[T], autowire_mode: AutowireMode = AutowireMode.NO,
                         dependency_check: DependencyCheck = DependencyCheck.NONE) -> T:
        """Fully create a new instance of ``cls`` that the container does not manage.

        The instance is constructed, populated and initialized like a
        prototype component, but its definition is not registered and no
        dependency edges are recorded.
        """
        self._ensure_not_closed()
        name = _default_name(cls)
        definition = self._external_definition(cls, autowire_mode, dependency_check)
        with self._resolution.creating(name, prototype=True):
            return self._create(name, definition, None)

    def autowire_component(self, existing: Any) -> None:
        """Populate an existing instance through the post-processor pipeline."""
        self.autowire_properties(existing, AutowireMode.NO, DependencyCheck.NONE)

    def autowire_properties(self, existing: Any, autowire_mode: AutowireMode = AutowireMode.NO,
                            dependency_check: DependencyCheck = DependencyCheck.NONE) -> None:
        """Autowire the properties of an existing instance by name or type."""
        self._ensure_not_closed()
        if autowire_mode is AutowireMode.CONSTRUCTOR:
            raise ValueError("AutowireMode.CONSTRUCTOR is not supported for existing instances")
        name = _default_name(type(existing))
        definition = self._external_definition(type(existing), autowire_mode, dependency_check)
        self._populator.populate(name, definition, self._wrap(existing))

    def configure_component(self, existing: Any, name: str) -> Any:
        """Populate and initialize an existing instance from the named definition.

        Returns:
            The object to use, possibly wrapped by post-processors
        """
        self._ensure_not_closed()
        definition = self.get_merged_definition(name).clone()
        definition.scope = SCOPE_PROTOTYPE
        definition.track_dependencies = False
        self._populator.populate(name, definition, self._wrap(existing))
        return self._initializer.initialize(name, existing, definition)

    def initialize_component(self, existing: Any, name: str) -> Any:
        """Run aware callbacks, init methods and the initialization pipeline."""
        return self._initializer.initialize(name, existing, None)

    def apply_before_initialization(self, existing: Any, name: str) -> Any:
        return self.pipeline.apply_before_initialization(existing, name)

    def apply_after_initialization(self, existing: Any, name: str) -> Any:
        return self.pipeline.apply_after_initialization(existing, name)

    # ------------------------------------------------------------------
    # Inner components
    # ------------------------------------------------------------------

    def next_inner_component_name(self, outer_name: str) -> str:
        return f"{outer_name}{_INNER_SEPARATOR}{next(self._inner_counter)}"

    def create_inner_component(self, inner_name: str, definition: ComponentDefinition,
                               outer_name: str, outer_definition: ComponentDefinition) -> Any:
        """Create an anonymous component declared as a value of another one.

        A non-singleton outer component passes its scope on to the inner one.
        """
        merged = definition.clone()
        if not outer_definition.is_singleton:
            merged.scope = outer_definition.scope
        merged.track_dependencies = outer_definition.track_dependencies
        with self._resolution.creating(inner_name):
            instance = self._create(inner_name, merged, None)
        if outer_definition.track_dependencies:
            self._registry.register_dependent(inner_name, outer_name)
        return instance

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def resolve_component_type(self, name: str, definition: ComponentDefinition) -> Optional[type]:
        """Resolve and cache the class of the definition.

        Raises:
            DefinitionError: When a dotted path cannot be imported or does
                not name a class
        """
        if definition.resolved_type is not None:
            return definition.resolved_type
        component_type = definition.component_type
        if component_type is None:
            return None
        if isinstance(component_type, str):
            try:
                component_type = self.type_loader.load(component_type)
            except (ImportError, AttributeError, ValueError) as e:
                raise DefinitionError(
                    f"Cannot resolve component type '{definition.component_type}' "
                    f"of component '{name}': {e}",
                    component_name=name,
                ) from e
        if not inspect.isclass(component_type):
            raise DefinitionError(
                f"Component type of '{name}' must be a class, got {component_type!r}",
                component_name=name,
            )
        definition.resolved_type = component_type
        return component_type

    def _create_depends_on(self, name: str, definition: ComponentDefinition) -> None:
        for dependency in definition.depends_on:
            if self._registry.is_dependent(name, dependency):
                raise DefinitionError(
                    f"Circular depends-on relationship between '{name}' and '{dependency}'",
                    component_name=name,
                )
            self._registry.register_dependent(dependency, name)
            try:
                self.get(dependency)
            except DefinitionNotFoundError as e:
                raise DefinitionError(
                    f"Component '{name}' depends on missing component '{dependency}'",
                    component_name=name,
                ) from e

    def _create_tracked(self, name: str, definition: ComponentDefinition,
                        args: Optional[tuple]) -> Any:
        with self._resolution.creating(name):
            return self._create(name, definition, args)

    def _create_scoped(self, name: str, definition: ComponentDefinition,
                       args: Optional[tuple]) -> Any:
        with self._resolution.creating(name, prototype=True):
            return self._create(name, definition, args)

    def _create(self, name: str, definition: ComponentDefinition, args: Optional[tuple]) -> Any:
        """Create one instance: shortcut, construction, population, initialization."""
        logger.debug(f"Creating instance of component '{name}'")
        self.resolve_component_type(name, definition)

        try:
            shortcut = self._resolve_before_instantiation(name, definition)
        except ComponentCreationError as e:
            if e.component_name == name:
                raise
            raise ComponentCreationError(
                name, "Post-processing before instantiation failed", phase="instantiation", cause=e
            ) from e
        except Exception as e:
            raise ComponentCreationError(
                name, "Post-processing before instantiation failed", phase="instantiation", cause=e
            ) from e
        if shortcut is not None:
            logger.debug(f"Instantiation of component '{name}' short-circuited by post-processor")
            return shortcut

        instance = self._do_create(name, definition, args or None)
        logger.debug(f"Finished creating instance of component '{name}'")
        return instance

    def _resolve_before_instantiation(self, name: str, definition: ComponentDefinition) -> Optional[Any]:
        if definition.before_instantiation_resolved is False:
            return None
        result = None
        if not definition.synthetic and self.pipeline.has(InstantiationPostProcessor):
            target = self._determine_target_type(name, definition)
            if target is not None:
                result = self.pipeline.apply_before_instantiation(target, name)
                if result is not None:
                    result = self.pipeline.apply_after_initialization(result, name)
        definition.before_instantiation_resolved = result is not None
        return result

    def _do_create(self, name: str, definition: ComponentDefinition, args: Optional[tuple]) -> Any:
        wrapper = self._constructor_resolver.create_instance(name, definition, args)
        instance = wrapper.wrapped_instance

        with definition.post_processing_lock:
            if not definition.post_processed:
                try:
                    self.pipeline.apply_merged_definition(definition, type(instance), name)
                except Exception as e:
                    raise ComponentCreationError(
                        name, "Post-processing of merged component definition failed",
                        phase="instantiation", cause=e,
                    ) from e
                definition.post_processed = True

        early_exposure = (
            definition.is_singleton
            and self.allow_circular_references
            and self._registry.is_in_creation(name)
        )
        if early_exposure:
            logger.debug(f"Eagerly caching component '{name}' to allow for resolving potential circular references")
            self._registry.add_early_factory(
                name, EarlyReference(instance, lambda raw: self._get_early_reference(name, definition, raw))
            )

        try:
            self._populator.populate(name, definition, wrapper)
        except ComponentCreationError as e:
            if e.component_name == name:
                raise
            raise ComponentCreationError(
                name, "Population of component failed", phase="population", cause=e
            ) from e
        except Exception as e:
            raise ComponentCreationError(
                name, "Population of component failed", phase="population", cause=e
            ) from e

        exposed = self._initializer.initialize(name, instance, definition)

        if early_exposure:
            early = self._registry.get_singleton(name, allow_early=False)
            if early is not None:
                if exposed is instance:
                    exposed = early
                elif not self.allow_raw_injection_despite_wrapping and self._registry.has_dependents(name):
                    actual_dependents = self._registry.get_dependents(name)
                    if actual_dependents:
                        raise CircularWiringError(
                            name,
                            f"Component with name '{name}' has been injected into other components "
                            f"[{', '.join(actual_dependents)}] in its raw version as part of a circular "
                            f"reference, but has eventually been wrapped. This means that said other "
                            f"components do not use the final version of the component.",
                            dependents=actual_dependents,
                        )

        try:
            self._register_disposable_if_necessary(name, exposed, definition)
        except DefinitionError as e:
            raise ComponentCreationError(
                name, "Invalid destruction signature", phase="initialization", cause=e
            ) from e
        return exposed

    def _get_early_reference(self, name: str, definition: ComponentDefinition, raw: Any) -> Any:
        if definition.synthetic:
            return raw
        return self.pipeline.get_early_reference(raw, name)

    def _register_disposable_if_necessary(self, name: str, instance: Any,
                                          definition: ComponentDefinition) -> None:
        if definition.is_prototype:
            return
        processors = self.pipeline.destruction_processors_for(instance)
        if not processors and not DisposableAdapter.has_destroy_method(instance, definition):
            return
        adapter = DisposableAdapter(instance, name, definition, processors)
        if definition.is_singleton:
            self._registry.register_disposable(name, adapter)
        else:
            scope = self._scopes.get(definition.scope)
            if scope is not None:
                scope.register_destruction_callback(name, adapter.destroy)

    def _destroy(self, name: str, instance: Any, definition: ComponentDefinition) -> None:
        processors = self.pipeline.destruction_processors_for(instance)
        adapter = DisposableAdapter(instance, name, definition, processors)
        try:
            adapter.destroy()
        except Exception as e:
            logger.warning(f"Destruction of component '{name}' threw an exception: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Type prediction
    # ------------------------------------------------------------------

    def _matches_type(self, name: str, definition: ComponentDefinition, type_to_match: Any,
                      allow_eager_init: bool) -> bool:
        instance = self._registry.get_singleton(name, allow_early=False)
        if instance is not None:
            return is_instance_of(instance, type_to_match)
        try:
            predicted = self._predict_type(name, definition, allow_eager_init)
        except DefinitionError:
            if allow_eager_init:
                raise
            logger.debug(f"Ignoring component '{name}' with unresolvable type during type matching")
            return False
        return predicted is not None and is_assignable(type_to_match, predicted)

    def _predict_type(self, name: str, definition: ComponentDefinition,
                      allow_eager_init: bool) -> Optional[type]:
        predicted = self._determine_target_type(name, definition)
        if predicted is not None and not definition.synthetic:
            from_processors = self.pipeline.predict_type(predicted, name)
            if from_processors is not None:
                predicted = from_processors
        if (
            predicted is None
            and allow_eager_init
            and definition.is_singleton
            and not definition.lazy_init
            and not self._registry.is_in_creation(name)
        ):
            predicted = type(self.get(name))
        return predicted

    def _determine_target_type(self, name: str, definition: ComponentDefinition) -> Optional[type]:
        if definition.factory_method_name:
            return self._factory_method_type(name, definition)
        return self.resolve_component_type(name, definition)

    def _factory_method_type(self, name: str, definition: ComponentDefinition) -> Optional[type]:
        """Common return annotation of the factory method candidates, if any."""
        if definition.factory_method_return_type is not None:
            return definition.factory_method_return_type
        if definition.factory_component_name:
            owner = self.get_type(definition.factory_component_name)
            static_only = False
        else:
            owner = self.resolve_component_type(name, definition)
            static_only = True
        if owner is None:
            return None

        return_types = set()
        for candidate in factory_method_candidates(owner, definition.factory_method_name, static_only):
            return_type = get_return_type(candidate)
            if return_type is None or not inspect.isclass(return_type):
                return None
            return_types.add(return_type)
        if len(return_types) != 1:
            return None
        definition.factory_method_return_type = return_types.pop()
        return definition.factory_method_return_type

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_by_type(self, required_type: Any, args: tuple) -> Any:
        names = self.names_for_type(required_type)
        if len(names) > 1:
            names = [n for n in names if self.is_autowire_candidate(n)] or names
        if not names:
            type_name = getattr(required_type, '__name__', str(required_type))
            raise DefinitionNotFoundError(
                f"No qualifying component of type '{type_name}' available.\n"
                f"Registered names: {self._registered_names()}"
            )
        if len(names) == 1:
            return self.get(names[0], *args, required_type=required_type)
        descriptor = DependencyDescriptor(required_type, None, kind="lookup")
        chosen = self.dependency_resolver.determine_autowire_candidate(names, descriptor, None)
        if chosen is None:
            type_name = getattr(required_type, '__name__', str(required_type))
            raise AmbiguousResolutionError(
                None, None, names,
                message=f"No unique component of type '{type_name}': expected single matching "
                        f"candidate but found {len(names)}: {', '.join(names)}",
            )
        return self.get(chosen, *args, required_type=required_type)

    def _check_required_type(self, name: str, instance: Any, required_type: Optional[Any]) -> Any:
        if required_type is not None and not is_instance_of(instance, required_type):
            try:
                return self.type_converter.convert(instance, required_type)
            except TypeConversionError as e:
                raise ComponentNotOfRequiredTypeError(name, required_type, type(instance)) from e
        return instance

    def _external_definition(self, cls: type, autowire_mode: AutowireMode,
                             dependency_check: DependencyCheck) -> ComponentDefinition:
        definition = ComponentDefinition(
            component_type=cls,
            scope=SCOPE_PROTOTYPE,
            autowire_mode=autowire_mode,
            dependency_check=dependency_check,
        )
        definition.resolved_type = cls
        definition.track_dependencies = False
        return definition

    def _wrap(self, instance: Any) -> InstanceWrapper:
        return InstanceWrapper(instance, self.introspector, self.type_converter)

    def _contains_local(self, name: str) -> bool:
        return name in self._definitions or self._registry.contains_singleton(name)

    def _registered_names(self) -> str:
        names = list(self._definitions)
        names.extend(n for n in self._registry.singleton_names() if n not in self._definitions)
        return ", ".join(names) or "None"

    def _not_found(self, name: str) -> DefinitionNotFoundError:
        return DefinitionNotFoundError(
            f"No component named '{name}' is registered.\n"
            f"Registered names: {self._registered_names()}\n"
            f"Hint: module.define(\"{name}\", SomeClass)"
        )

    def _ensure_not_closed(self) -> None:
        if self._closed:
            raise ContainerClosedError(
                "Container has been closed. Create a new ComponentContainer "
                "instead of reusing a closed one."
            )

    def __repr__(self) -> str:
        return f"ComponentContainer(definitions={list(self._definitions)})"


def _default_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def _declares(interface: type, attribute: str) -> bool:
    for klass in interface.__mro__:
        if klass is object:
            continue
        members = vars(klass)
        if attribute in members or f"set_{attribute}" in members:
            return True
        if attribute in members.get('__annotations__', {}):
            return True
    return False
