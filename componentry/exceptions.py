"""
Componentry Exceptions

Custom exception hierarchy for the componentry container
"""

from typing import Iterable, List, Optional


class ComponentryError(Exception):
    """
    Base exception for all componentry errors.

    All componentry-specific exceptions inherit from this class.
    You can catch this to handle any container error generically.

    Example:
        >>> try:
        ...     service = container.get("service")
        ... except ComponentryError as e:
        ...     print(f"DI error: {e}")
    """

    pass


class DefinitionError(ComponentryError):
    """
    Raised when a component definition itself is invalid.

    This error is always fatal and is never retried: the metadata has to
    be fixed before the component can be created.

    Common causes:
        - ``component_type`` is a dotted path that cannot be imported
        - A definition declares neither a type nor a factory component
        - ``factory_component_name`` points back at the same component
        - A custom init/destroy method requires arguments
        - The definition names a scope that was never registered
        - ``depends_on`` entries form a cycle

    Solution:
        Fix the definition, for example::

            module.define(
                "repository",
                component_type="myapp.storage.Repository",  # must be importable
                init_method_name="connect",                 # must take no arguments
            )
    """

    def __init__(self, message: str, component_name: Optional[str] = None):
        super().__init__(message)
        self.component_name = component_name


class DefinitionNotFoundError(ComponentryError):
    """
    Raised when a requested name or type is not registered in the container.

    Common causes:
        - Forgetting to register the definition in a module
        - Typo in the component name
        - Module containing the definition not loaded

    Solution:
        Register the component before requesting it::

            module = ComponentModule()
            with module:
                module.define("database", Database)

            container.load_modules([module])
            db = container.get("database")

    Note:
        The error message lists the registered names to help identify
        available components.
    """

    pass


class DuplicateDefinitionError(ComponentryError):
    """
    Raised when the same component name is registered twice.

    Common causes:
        - Defining the same name in two modules
        - Loading the same module twice

    Solution:
        1. Use one definition per name
        2. Use ``unload_modules()`` before re-registering
        3. Create the container with ``allow_definition_overriding=True``
           when replacing definitions is intended
    """

    pass


class ContainerClosedError(ComponentryError):
    """
    Raised when attempting to use a closed container.

    Common causes:
        - Using a container after calling ``container.close()``
        - Using a container after exiting a ``with`` block

    Solution:
        Create a new ``ComponentContainer`` instead of reusing a closed one::

            with ComponentContainer() as container:
                container.load_modules([module])
                service = container.get("service")  # OK
            # Container is now closed
    """

    pass


class ScopeNotActiveError(ComponentryError):
    """
    Raised when a component is requested from a custom scope that is closed.

    Solution:
        Open a new ``SimpleScope`` and register it again, or request the
        component while the scope is still open.
    """

    pass


class TypeConversionError(ComponentryError):
    """
    Raised when a declared value cannot be converted to the target type.

    Common causes:
        - A literal such as ``"abc"`` declared for an ``int`` property
        - A value of an unrelated type declared for a typed property

    Solution:
        Declare a value of the right type, or register a custom
        ``TypeConverter`` that knows the conversion::

            class MyConverter(TypeConverter):
                def convert_custom(self, value, target_type):
                    ...

            container = ComponentContainer(type_converter=MyConverter())
    """

    def __init__(self, message: str, value=None, target_type=None):
        super().__init__(message)
        self.value = value
        self.target_type = target_type


class ComponentNotOfRequiredTypeError(ComponentryError):
    """
    Raised when ``get(name, required_type=...)`` finds an object of another type.
    """

    def __init__(self, component_name: str, required_type, actual_type):
        super().__init__(
            f"Component '{component_name}' is expected to be of type "
            f"{_type_name(required_type)} but was actually of type {_type_name(actual_type)}"
        )
        self.component_name = component_name
        self.required_type = required_type
        self.actual_type = actual_type


class ComponentCreationError(ComponentryError):
    """
    Raised when creating a component fails.

    Every failure raised while instantiating, populating or initializing
    a component is wrapped in this error, which always names the component
    and the phase so that a failure deep inside a dependency graph can be
    traced back to the component where it started.

    Attributes:
        component_name: The component whose creation failed
        phase: One of ``instantiation``, ``population``, ``initialization``,
            ``destruction``
        cause: The original exception, if any (also set as ``__cause__``)

    Common causes:
        - The constructor, factory method or init method raised
        - No constructor or factory method matches the declared arguments
        - A post-processor raised

    Solution:
        Read ``cause`` (or the chained traceback) for the original error::

            try:
                container.get("controller")
            except ComponentCreationError as e:
                print(e.component_name, e.phase, e.cause)
    """

    def __init__(
        self,
        component_name: Optional[str],
        message: str,
        phase: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.component_name = component_name
        self.phase = phase
        self.cause = cause
        self.detail = message

    def __str__(self) -> str:
        if self.component_name is None:
            text = self.detail
        else:
            text = f"Error creating component with name '{self.component_name}'"
            if self.phase:
                text += f" during {self.phase}"
            text += f": {self.detail}"
        if self.cause is not None:
            text += f"; nested exception is {type(self.cause).__name__}: {self.cause}"
        return text


class UnsatisfiedDependencyError(ComponentCreationError):
    """
    Raised when a required property or constructor parameter cannot be resolved.

    Attributes:
        injection_point: Name of the property or parameter that could not
            be satisfied (None when not applicable)

    Common causes:
        - No component of the required type is registered
        - Dependency checking is enabled and a property was left unset
        - A constructor parameter has no declared value and no type hint

    Solution:
        Register a candidate of the required type, declare a value for the
        property, mark the injection point ``Optional[...]``, or disable
        dependency checking::

            module.define("service", Service, autowire_mode=AutowireMode.BY_TYPE)
            module.define("repository", InMemoryRepository)  # the candidate
    """

    def __init__(
        self,
        component_name: Optional[str],
        injection_point: Optional[str],
        message: str,
        cause: Optional[BaseException] = None,
        phase: Optional[str] = None,
    ):
        self.injection_point = injection_point
        if injection_point:
            message = f"Unsatisfied dependency expressed through '{injection_point}': {message}"
        super().__init__(component_name, message, phase=phase, cause=cause)


class AmbiguousResolutionError(UnsatisfiedDependencyError):
    """
    Raised when more than one equally valid candidate exists.

    This applies to constructors, factory methods and by-type autowiring
    targets. The error lists every candidate that was considered.

    Attributes:
        candidates: Names (or signatures) of every candidate considered

    Solution:
        1. Mark one candidate definition ``primary=True``
        2. Give candidate classes distinct ``@priority(...)`` values
        3. Reference the wanted component explicitly with
           ``ComponentReference("name")``
        4. For constructors, declare arguments so that only one matches
    """

    def __init__(
        self,
        component_name: Optional[str],
        injection_point: Optional[str],
        candidates: Iterable[str],
        message: Optional[str] = None,
        phase: Optional[str] = None,
    ):
        self.candidates: List[str] = list(candidates)
        if message is None:
            message = (
                f"expected single matching candidate but found {len(self.candidates)}: "
                f"{', '.join(self.candidates)}"
            )
        super().__init__(component_name, injection_point, message, phase=phase)


class CircularWiringError(ComponentCreationError):
    """
    Raised when a circular reference cannot be resolved safely.

    Two situations produce this error:

    - A component is requested while it is still being created and no early
      reference is available (constructor cycles, prototype cycles, or
      circular references disabled on the container).
    - A raw early reference of a singleton was injected into other
      components, but the singleton was later wrapped (for example by a
      proxy created after initialization). The dependents would hold the
      raw object rather than the final one.

    Attributes:
        dependents: Names of the components holding the raw early reference

    Example of an unresolvable cycle::

        class ServiceA:
            def __init__(self, b: ServiceB): ...

        class ServiceB:
            def __init__(self, a: ServiceA): ...  # constructor cycle!

    Solution:
        1. Inject one side through a property instead of the constructor
        2. Keep cyclic components singleton-scoped
        3. Return the same proxy from ``get_early_reference`` and
           ``after_initialization`` in proxy-creating post-processors
    """

    def __init__(
        self,
        component_name: Optional[str],
        message: str,
        dependents: Optional[Iterable[str]] = None,
    ):
        self.dependents: List[str] = list(dependents or [])
        super().__init__(component_name, message, phase=None)


def _type_name(t) -> str:
    return t.__name__ if hasattr(t, '__name__') else str(t)
